from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, UniqueConstraint
from sqlalchemy.sql import func
from campus_roster.database import TenantBase, enum_type
import enum


class LocationType(str, enum.Enum):
    """Kind of physical zone"""
    GATE = "gate"
    GROUND = "ground"
    BUILDING = "building"
    CLASSROOM = "classroom"
    CORRIDOR = "corridor"
    OFFICE = "office"
    LAB = "lab"
    LIBRARY = "library"
    CAFETERIA = "cafeteria"
    OTHER = "other"


class Location(TenantBase):
    """Duty location / zone master"""
    __tablename__ = "duty_locations"
    __table_args__ = (UniqueConstraint("school_id", "code", name="uq_duty_locations_school_code"),)

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(String(64), nullable=False, index=True)
    code = Column(String(50), nullable=False)
    name = Column(String(100), nullable=False)
    type = Column(enum_type(LocationType), default=LocationType.OTHER)
    building = Column(String(100), nullable=True)
    floor = Column(String(20), nullable=True)
    capacity = Column(Integer, nullable=True)  # advisory only, never enforced
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Location(id={self.id}, code={self.code})>"
