from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, UniqueConstraint
from sqlalchemy.sql import func
from campus_roster.database import TenantBase


class DutyCategory(TenantBase):
    """Admin-configurable duty category"""
    __tablename__ = "duty_categories"
    __table_args__ = (UniqueConstraint("school_id", "code", name="uq_duty_categories_school_code"),)

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(String(64), nullable=False, index=True)
    code = Column(String(50), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(20), default="#6B7280")
    icon = Column(String(50), nullable=True)
    display_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<DutyCategory(id={self.id}, code={self.code})>"
