from sqlalchemy import Column, Integer, String, DateTime, Date, Text, ForeignKey, Index, UniqueConstraint, text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from campus_roster.database import TenantBase, enum_type
from campus_roster.models.duty_definition import AssigneeKind
import enum


class OccurrenceStatus(str, enum.Enum):
    """Per-date acceptance status"""
    PENDING_ACCEPTANCE = "pending_acceptance"  # waiting for the assignee
    SCHEDULED = "scheduled"                    # acceptance not required
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Occurrences that hold the assignee's time
OCCUPYING_STATUSES = (
    OccurrenceStatus.PENDING_ACCEPTANCE,
    OccurrenceStatus.SCHEDULED,
    OccurrenceStatus.ACCEPTED,
    OccurrenceStatus.COMPLETED,
)

TERMINAL_STATUSES = (
    OccurrenceStatus.DECLINED,
    OccurrenceStatus.COMPLETED,
    OccurrenceStatus.CANCELLED,
)

_OCCUPYING_SQL = "status IN ({})".format(", ".join(f"'{s.value}'" for s in OCCUPYING_STATUSES))


class RosterAssignmentDate(TenantBase):
    """One calendar occurrence of a roster assignment"""
    __tablename__ = "roster_assignment_dates"
    __table_args__ = (
        UniqueConstraint("roster_assignment_id", "date", name="uq_roster_assignment_dates_assignment_date"),
        # storage backstop against double booking the same slot
        Index(
            "uq_roster_assignment_dates_live_slot",
            "assignee_kind", "assignee_id", "date", "time_slot_id",
            unique=True,
            postgresql_where=text(_OCCUPYING_SQL),
            sqlite_where=text(_OCCUPYING_SQL),
        ),
        Index("idx_roster_assignment_dates_assignee_date", "assignee_kind", "assignee_id", "date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    roster_assignment_id = Column(Integer, ForeignKey("roster_assignments.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    status = Column(enum_type(OccurrenceStatus), default=OccurrenceStatus.PENDING_ACCEPTANCE)

    # Copied from the parent so conflicts are checked per assignee
    assignee_kind = Column(enum_type(AssigneeKind), nullable=False)
    assignee_id = Column(String(64), nullable=False)
    time_slot_id = Column(Integer, ForeignKey("duty_time_slots.id"), nullable=True)

    accepted_at = Column(DateTime(timezone=True), nullable=True)
    accepted_by = Column(String(64), nullable=True)
    declined_at = Column(DateTime(timezone=True), nullable=True)
    declined_by = Column(String(64), nullable=True)
    decline_reason = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    completed_by = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    assignment = relationship("RosterAssignment", back_populates="occurrences")

    def __repr__(self):
        return f"<RosterAssignmentDate(id={self.id}, date={self.date}, status={self.status})>"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def status_display(self) -> str:
        """Human readable status"""
        status_map = {
            OccurrenceStatus.PENDING_ACCEPTANCE: "Awaiting acceptance",
            OccurrenceStatus.SCHEDULED: "Scheduled",
            OccurrenceStatus.ACCEPTED: "Accepted",
            OccurrenceStatus.DECLINED: "Declined",
            OccurrenceStatus.COMPLETED: "Completed",
            OccurrenceStatus.CANCELLED: "Cancelled",
        }
        return status_map.get(self.status, "Unknown")

    def snapshot(self) -> dict:
        return {
            "status": self.status.value if self.status else None,
            "date": self.date.isoformat() if self.date else None,
        }
