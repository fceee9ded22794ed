"""Business errors raised by the roster engine and workflow."""

from __future__ import annotations

from typing import Any, Optional


class RosterError(Exception):
    """Base class for every logical roster error."""

    code = "roster_error"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code}


class ValidationError(RosterError):
    """Malformed input or a duty rule the request does not satisfy."""

    code = "validation_error"
    status_code = 422


class ConflictError(RosterError):
    """Overlapping occurrence for at least one assignee."""

    code = "conflict"
    status_code = 409

    def __init__(self, message: str, report: Optional[Any] = None) -> None:
        super().__init__(message)
        self.report = report

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.report is not None:
            payload["conflicts"] = self.report.to_dict()
        return payload


class CapacityExceededError(RosterError):
    """Student weekly duty cap would be exceeded."""

    code = "capacity_exceeded"
    status_code = 409


class InvalidStateError(RosterError):
    """Transition not allowed from the current status."""

    code = "invalid_state"
    status_code = 409


class NotFoundError(RosterError):
    """Referenced record does not exist in the tenant's data."""

    code = "not_found"
    status_code = 404


class TenantNotFoundError(NotFoundError):
    """Unknown or inactive school group."""

    code = "tenant_not_found"
