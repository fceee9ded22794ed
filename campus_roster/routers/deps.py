"""
Shared router dependencies

Every roster endpoint runs against the tenant database of the group named
in the X-Group-Id header; X-School-Id scopes the data inside it.
"""
from fastapi import Depends, Header
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional

from campus_roster.database import get_db, open_tenant_session
from campus_roster.services.tenant_service import TenantService
from campus_roster.tenancy import TenantContext


def get_tenant_context(
    x_group_id: str = Header(...),
    x_school_id: str = Header(...),
    x_actor_id: Optional[str] = Header(None),
    admin_db: Session = Depends(get_db)
):
    """Resolve the tenant database and open a session on it"""
    database_url = TenantService(admin_db).resolve_database_url(x_group_id)
    db = open_tenant_session(database_url)
    try:
        yield TenantContext(
            db=db,
            group_id=x_group_id,
            school_id=x_school_id,
            actor_id=x_actor_id
        )
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_clock():
    """Today's date provider (overridden in tests)"""
    return date.today
