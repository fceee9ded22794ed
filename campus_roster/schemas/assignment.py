import json
from pydantic import BaseModel, Field, field_validator
from typing import Any, Optional
from datetime import date, datetime, time
from campus_roster.domain.scheduling import RecurrencePattern, dump_weekdays, parse_weekdays
from campus_roster.models.duty_definition import AssigneeKind
from campus_roster.models.roster_assignment import AssignmentStatus
from campus_roster.models.roster_assignment_date import OccurrenceStatus
from campus_roster.models.audit_log import AuditAction


def _weekday_list(value):
    """JSON text column -> list of weekday codes"""
    if value is None or isinstance(value, list):
        return value
    return json.loads(dump_weekdays(parse_weekdays(value)))


class AssigneeRef(BaseModel):
    """Teacher, staff member or student (ids come from the user service)"""
    kind: AssigneeKind
    id: str = Field(min_length=1, max_length=64)


class ConflictCheckRequest(BaseModel):
    """Proposed duty, assignees and dates"""
    duty_id: int
    assignees: list[AssigneeRef] = Field(min_length=1)
    start_date: date
    end_date: Optional[date] = None
    recurrence_pattern: RecurrencePattern = RecurrencePattern.NONE
    recurrence_days: Optional[list[str]] = None
    time_slot_id: Optional[int] = None
    custom_start_time: Optional[time] = None
    custom_end_time: Optional[time] = None


class AssignmentCreate(ConflictCheckRequest):
    """Create one assignment per assignee"""
    roster_type_id: Optional[int] = None
    location_id: Optional[int] = None
    custom_location: Optional[str] = None
    role_id: Optional[int] = None
    supervisor_id: Optional[str] = None
    notes: Optional[str] = None
    priority: int = 0
    force: bool = False
    override_reason: Optional[str] = None


class AssignmentUpdate(BaseModel):
    """Details that do not move the assignment in time; dates and window are fixed"""
    supervisor_id: Optional[str] = None
    location_id: Optional[int] = None
    custom_location: Optional[str] = None
    role_id: Optional[int] = None
    notes: Optional[str] = None
    priority: Optional[int] = None

    class Config:
        extra = "forbid"


class CancelRequest(BaseModel):
    reason: str


class ApprovalRequest(BaseModel):
    approved: bool = True
    reason: Optional[str] = None


class DeclineRequest(BaseModel):
    reason: str


class OccurrenceNote(BaseModel):
    notes: Optional[str] = None


class OccurrenceResponse(BaseModel):
    """One dated occurrence"""
    id: int
    roster_assignment_id: int
    date: date
    status: OccurrenceStatus
    assignee_kind: AssigneeKind
    assignee_id: str
    time_slot_id: Optional[int]
    accepted_at: Optional[datetime] = None
    accepted_by: Optional[str] = None
    declined_at: Optional[datetime] = None
    declined_by: Optional[str] = None
    decline_reason: Optional[str] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class AssignmentResponse(BaseModel):
    """Roster assignment"""
    id: int
    duty_id: int
    roster_type_id: Optional[int]
    start_date: date
    end_date: Optional[date]
    recurrence_pattern: RecurrencePattern
    recurrence_days: Optional[list[str]] = None
    time_slot_id: Optional[int]
    custom_start_time: Optional[time]
    custom_end_time: Optional[time]
    location_id: Optional[int]
    custom_location: Optional[str]
    role_id: Optional[int]
    assignee_kind: AssigneeKind
    assignee_id: str
    supervisor_id: Optional[str]
    status: AssignmentStatus
    requires_approval: bool
    requires_acceptance: bool
    approved_by: Optional[str]
    approved_at: Optional[datetime]
    cancelled_by: Optional[str]
    cancelled_at: Optional[datetime]
    cancel_reason: Optional[str]
    notes: Optional[str]
    priority: int
    is_emergency: bool
    created_by: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True

    @field_validator("recurrence_days", mode="before")
    @classmethod
    def parse_recurrence_days(cls, value):
        return _weekday_list(value)


class AssignmentDetail(AssignmentResponse):
    """Assignment with its occurrences"""
    occurrences: list[OccurrenceResponse] = []


class AuditEntryResponse(BaseModel):
    id: int
    roster_assignment_id: int
    occurrence_id: Optional[int]
    action: AuditAction
    old_values: Optional[dict[str, Any]] = None
    new_values: Optional[dict[str, Any]] = None
    reason: Optional[str]
    performed_by: Optional[str]
    performed_at: Optional[datetime]

    class Config:
        from_attributes = True

    @field_validator("old_values", "new_values", mode="before")
    @classmethod
    def parse_json(cls, value):
        if isinstance(value, str):
            return json.loads(value)
        return value
