from campus_roster.schemas.assignment import (
    AssigneeRef,
    ConflictCheckRequest,
    AssignmentCreate,
    AssignmentResponse,
    AssignmentDetail,
    OccurrenceResponse,
    AuditEntryResponse,
)
from campus_roster.schemas.config import RosterConfigUpdate, RosterConfigResponse

__all__ = [
    "AssigneeRef",
    "ConflictCheckRequest",
    "AssignmentCreate",
    "AssignmentResponse",
    "AssignmentDetail",
    "OccurrenceResponse",
    "AuditEntryResponse",
    "RosterConfigUpdate",
    "RosterConfigResponse",
]
