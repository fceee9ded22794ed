"""Per-request tenant context passed explicitly to every service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session


@dataclass(frozen=True)
class TenantContext:
    """Resolved once per request: which group database, which school, who is acting."""

    db: Session
    group_id: str
    school_id: str
    actor_id: Optional[str] = None
