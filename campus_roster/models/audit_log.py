from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from campus_roster.database import TenantBase, enum_type
import enum
import json


class AuditAction(str, enum.Enum):
    """Recorded roster state change"""
    CREATED = "created"
    UPDATED = "updated"
    OVERRIDE = "override"          # created despite a conflict
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COMPLETED = "completed"
    AUTO_COMPLETED = "auto_completed"


class AuditLogEntry(TenantBase):
    """Append-only roster audit log"""
    __tablename__ = "roster_audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(String(64), nullable=False, index=True)
    roster_assignment_id = Column(Integer, ForeignKey("roster_assignments.id"), nullable=False, index=True)
    occurrence_id = Column(Integer, ForeignKey("roster_assignment_dates.id"), nullable=True)
    action = Column(enum_type(AuditAction), nullable=False)
    old_values = Column(Text, nullable=True)  # JSON snapshot before
    new_values = Column(Text, nullable=True)  # JSON snapshot after
    reason = Column(Text, nullable=True)
    performed_by = Column(String(64), nullable=True)
    performed_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    assignment = relationship("RosterAssignment", back_populates="audit_entries")

    def __repr__(self):
        return f"<AuditLogEntry(id={self.id}, assignment_id={self.roster_assignment_id}, action={self.action})>"

    def get_old_values(self) -> dict:
        return json.loads(self.old_values) if self.old_values else {}

    def get_new_values(self) -> dict:
        return json.loads(self.new_values) if self.new_values else {}

    def set_values(self, old: dict = None, new: dict = None) -> None:
        self.old_values = json.dumps(old) if old is not None else None
        self.new_values = json.dumps(new) if new is not None else None
