import json
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime, time
from campus_roster.domain.scheduling import dump_weekdays, parse_weekdays
from campus_roster.models.duty_definition import AssigneeKind, DutyCategoryType, RiskLevel
from campus_roster.models.location import LocationType


class CatalogCreate(BaseModel):
    """Fields shared by every catalog"""
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)


class CatalogResponse(BaseModel):
    id: int
    code: str
    name: str
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ===== Roster types =====

class RosterTypeCreate(CatalogCreate):
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None


class RosterTypeUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_active: Optional[bool] = None


class RosterTypeResponse(CatalogResponse):
    description: Optional[str]
    color: Optional[str]
    icon: Optional[str]
    is_system: bool


# ===== Duty categories =====

class DutyCategoryCreate(CatalogCreate):
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    display_order: Optional[int] = None


class DutyCategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class DutyCategoryResponse(CatalogResponse):
    description: Optional[str]
    color: Optional[str]
    icon: Optional[str]
    display_order: int


# ===== Time slots =====

class TimeSlotCreate(CatalogCreate):
    start_time: time
    end_time: time
    applies_to_days: Optional[list[str]] = None
    display_order: Optional[int] = None


class TimeSlotUpdate(BaseModel):
    name: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    applies_to_days: Optional[list[str]] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class TimeSlotResponse(CatalogResponse):
    start_time: time
    end_time: time
    applies_to_days: list[str]
    display_order: int

    @field_validator("applies_to_days", mode="before")
    @classmethod
    def parse_days(cls, value):
        if isinstance(value, list):
            return value
        return json.loads(dump_weekdays(parse_weekdays(value)))


# ===== Locations =====

class LocationCreate(CatalogCreate):
    type: LocationType = LocationType.OTHER
    building: Optional[str] = None
    floor: Optional[str] = None
    capacity: Optional[int] = None
    description: Optional[str] = None


class LocationUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[LocationType] = None
    building: Optional[str] = None
    floor: Optional[str] = None
    capacity: Optional[int] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class LocationResponse(CatalogResponse):
    type: LocationType
    building: Optional[str]
    floor: Optional[str]
    capacity: Optional[int]
    description: Optional[str]


# ===== Duty roles =====

class DutyRoleCreate(CatalogCreate):
    description: Optional[str] = None
    priority: Optional[int] = None


class DutyRoleUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None


class DutyRoleResponse(CatalogResponse):
    description: Optional[str]
    priority: int


# ===== Duty definitions =====

class DutyCreate(CatalogCreate):
    category: DutyCategoryType = DutyCategoryType.OPERATIONAL
    category_id: Optional[int] = None
    roster_type_id: Optional[int] = None
    allowed_assignee_kinds: Optional[list[AssigneeKind]] = None
    risk_level: RiskLevel = RiskLevel.LOW
    supervisor_required: bool = False
    default_time_slot_id: Optional[int] = None
    default_location_id: Optional[int] = None
    min_assignees: int = 1
    max_assignees: Optional[int] = None
    max_per_week_student: Optional[int] = None
    requires_acceptance: Optional[bool] = None
    instructions: Optional[str] = None


class DutyUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[DutyCategoryType] = None
    category_id: Optional[int] = None
    roster_type_id: Optional[int] = None
    allowed_assignee_kinds: Optional[list[AssigneeKind]] = None
    risk_level: Optional[RiskLevel] = None
    supervisor_required: Optional[bool] = None
    default_time_slot_id: Optional[int] = None
    default_location_id: Optional[int] = None
    min_assignees: Optional[int] = None
    max_assignees: Optional[int] = None
    max_per_week_student: Optional[int] = None
    requires_acceptance: Optional[bool] = None
    instructions: Optional[str] = None
    is_active: Optional[bool] = None


class DutyResponse(CatalogResponse):
    category: DutyCategoryType
    category_id: Optional[int]
    roster_type_id: Optional[int]
    allowed_assignee_kinds: list[AssigneeKind]
    risk_level: RiskLevel
    supervisor_required: bool
    default_time_slot_id: Optional[int]
    default_location_id: Optional[int]
    min_assignees: int
    max_assignees: Optional[int]
    max_per_week_student: Optional[int]
    requires_acceptance: Optional[bool]
    instructions: Optional[str]

    @field_validator("allowed_assignee_kinds", mode="before")
    @classmethod
    def parse_kinds(cls, value):
        if isinstance(value, str):
            return json.loads(value)
        return value
