from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, UniqueConstraint
from sqlalchemy.sql import func
from campus_roster.database import TenantBase


class RosterType(TenantBase):
    """Roster type master (teaching, general duty, exam duty, ...)"""
    __tablename__ = "roster_types"
    __table_args__ = (UniqueConstraint("school_id", "code", name="uq_roster_types_school_code"),)

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(String(64), nullable=False, index=True)
    code = Column(String(50), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(20), default="#3B82F6")
    icon = Column(String(50), nullable=True)
    is_system = Column(Boolean, default=False)  # seeded, not user-created
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<RosterType(id={self.id}, code={self.code})>"
