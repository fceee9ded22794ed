from campus_roster.models.school_group import SchoolGroup
from campus_roster.models.schema_version import SchemaVersion
from campus_roster.models.roster_type import RosterType
from campus_roster.models.duty_category import DutyCategory
from campus_roster.models.time_slot import TimeSlot
from campus_roster.models.location import Location, LocationType
from campus_roster.models.duty_role import DutyRole
from campus_roster.models.duty_definition import DutyDefinition, DutyCategoryType, RiskLevel, AssigneeKind
from campus_roster.models.roster_assignment import RosterAssignment, AssignmentStatus
from campus_roster.models.roster_assignment_date import RosterAssignmentDate, OccurrenceStatus
from campus_roster.models.audit_log import AuditLogEntry, AuditAction
from campus_roster.models.roster_config import RosterConfig

__all__ = [
    "SchoolGroup",
    "SchemaVersion",
    "RosterType",
    "DutyCategory",
    "TimeSlot",
    "Location",
    "LocationType",
    "DutyRole",
    "DutyDefinition",
    "DutyCategoryType",
    "RiskLevel",
    "AssigneeKind",
    "RosterAssignment",
    "AssignmentStatus",
    "RosterAssignmentDate",
    "OccurrenceStatus",
    "AuditLogEntry",
    "AuditAction",
    "RosterConfig",
]
