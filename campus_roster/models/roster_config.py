from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.sql import func
from campus_roster.database import TenantBase


class RosterConfig(TenantBase):
    """Per-school roster policy"""
    __tablename__ = "roster_config"

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(String(64), unique=True, nullable=False)
    student_max_duties_per_week = Column(Integer, default=3)
    student_duties_require_approval = Column(Boolean, default=True)
    high_risk_requires_approval = Column(Boolean, default=True)
    requires_acceptance = Column(Boolean, default=True)       # occurrences start pending_acceptance
    auto_complete_past_duties = Column(Boolean, default=True)
    notify_assignees = Column(Boolean, default=True)
    notify_supervisors = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<RosterConfig(school_id={self.school_id})>"
