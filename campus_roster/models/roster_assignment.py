from sqlalchemy import Column, Integer, String, DateTime, Date, Time, Boolean, Text, ForeignKey, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from campus_roster.database import TenantBase, enum_type
from campus_roster.domain.scheduling import (
    RecurrencePattern,
    TimeWindow,
    Weekday,
    dump_weekdays,
    parse_weekdays,
)
from campus_roster.models.duty_definition import AssigneeKind
import enum


class AssignmentStatus(str, enum.Enum):
    """Roster assignment lifecycle"""
    PENDING_APPROVAL = "pending_approval"      # waiting for an admin (high risk / student duty)
    PENDING_ACCEPTANCE = "pending_acceptance"  # some occurrence still awaits the assignee
    SCHEDULED = "scheduled"                    # confirmed
    COMPLETED = "completed"                    # every kept occurrence completed
    DECLINED = "declined"                      # every occurrence declined
    CANCELLED = "cancelled"


class RosterAssignment(TenantBase):
    """Binds a duty to one assignee over a date range"""
    __tablename__ = "roster_assignments"
    __table_args__ = (
        Index("idx_roster_assignments_assignee", "assignee_kind", "assignee_id"),
        Index("idx_roster_assignments_dates", "start_date", "end_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(String(64), nullable=False, index=True)
    duty_id = Column(Integer, ForeignKey("duty_master.id"), nullable=False, index=True)
    roster_type_id = Column(Integer, ForeignKey("roster_types.id"), nullable=True)

    # Time context
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    recurrence_pattern = Column(enum_type(RecurrencePattern), default=RecurrencePattern.NONE)
    recurrence_days = Column(Text, nullable=True)  # JSON: weekday codes (weekly pattern)
    time_slot_id = Column(Integer, ForeignKey("duty_time_slots.id"), nullable=True)
    custom_start_time = Column(Time, nullable=True)
    custom_end_time = Column(Time, nullable=True)

    # Location
    location_id = Column(Integer, ForeignKey("duty_locations.id"), nullable=True)
    custom_location = Column(String(200), nullable=True)

    # Assignment
    role_id = Column(Integer, ForeignKey("duty_roles.id"), nullable=True)
    assignee_kind = Column(enum_type(AssigneeKind), nullable=False)
    assignee_id = Column(String(64), nullable=False)
    supervisor_id = Column(String(64), nullable=True)

    # Status & approval
    status = Column(enum_type(AssignmentStatus), default=AssignmentStatus.SCHEDULED, index=True)
    requires_approval = Column(Boolean, default=False)
    requires_acceptance = Column(Boolean, default=True)
    approved_by = Column(String(64), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String(64), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancel_reason = Column(Text, nullable=True)

    # Meta
    notes = Column(Text, nullable=True)
    priority = Column(Integer, default=0)
    is_emergency = Column(Boolean, default=False)  # created over a conflict
    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    duty = relationship("DutyDefinition")
    roster_type = relationship("RosterType")
    time_slot = relationship("TimeSlot")
    location = relationship("Location")
    role = relationship("DutyRole")
    occurrences = relationship(
        "RosterAssignmentDate",
        back_populates="assignment",
        order_by="RosterAssignmentDate.date",
    )
    audit_entries = relationship(
        "AuditLogEntry",
        back_populates="assignment",
        order_by="AuditLogEntry.id",
    )

    def __repr__(self):
        return (
            f"<RosterAssignment(id={self.id}, duty_id={self.duty_id}, "
            f"assignee={self.assignee_kind}:{self.assignee_id}, status={self.status})>"
        )

    @property
    def window(self) -> TimeWindow:
        """Custom override first, then the time slot"""
        if self.custom_start_time and self.custom_end_time:
            return TimeWindow(self.custom_start_time, self.custom_end_time)
        return self.time_slot.window

    def get_recurrence_days(self) -> frozenset[Weekday]:
        return parse_weekdays(self.recurrence_days)

    def set_recurrence_days(self, weekdays) -> None:
        self.recurrence_days = dump_weekdays(weekdays) if weekdays else None

    def snapshot(self) -> dict:
        """State captured in audit entries"""
        return {
            "status": self.status.value if self.status else None,
            "duty_id": self.duty_id,
            "assignee_kind": self.assignee_kind.value if self.assignee_kind else None,
            "assignee_id": self.assignee_id,
            "supervisor_id": self.supervisor_id,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "time_slot_id": self.time_slot_id,
            "location_id": self.location_id,
            "custom_location": self.custom_location,
            "role_id": self.role_id,
            "notes": self.notes,
            "priority": self.priority,
            "is_emergency": bool(self.is_emergency),
        }
