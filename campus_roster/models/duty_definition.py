from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from campus_roster.database import TenantBase, enum_type
import enum
import json


class DutyCategoryType(str, enum.Enum):
    """Built-in duty category"""
    ACADEMIC = "academic"
    OPERATIONAL = "operational"
    STUDENT_LEADERSHIP = "student_leadership"
    EVENT = "event"
    TRANSPORT = "transport"
    EXAM = "exam"


class RiskLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AssigneeKind(str, enum.Enum):
    """Who can hold a duty"""
    TEACHER = "teacher"
    STAFF = "staff"
    STUDENT = "student"


DEFAULT_ASSIGNEE_KINDS = (AssigneeKind.TEACHER, AssigneeKind.STAFF)


class DutyDefinition(TenantBase):
    """Duty master: a task template assigned many times"""
    __tablename__ = "duty_master"
    __table_args__ = (UniqueConstraint("school_id", "code", name="uq_duty_master_school_code"),)

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(String(64), nullable=False, index=True)
    code = Column(String(50), nullable=False)
    name = Column(String(200), nullable=False)
    category = Column(enum_type(DutyCategoryType), default=DutyCategoryType.OPERATIONAL)
    category_id = Column(Integer, ForeignKey("duty_categories.id"), nullable=True)
    roster_type_id = Column(Integer, ForeignKey("roster_types.id"), nullable=True)
    allowed_assignee_kinds = Column(
        Text, default=lambda: json.dumps([k.value for k in DEFAULT_ASSIGNEE_KINDS])
    )  # JSON: assignee kinds
    risk_level = Column(enum_type(RiskLevel), default=RiskLevel.LOW)
    supervisor_required = Column(Boolean, default=False)
    default_time_slot_id = Column(Integer, ForeignKey("duty_time_slots.id"), nullable=True)
    default_location_id = Column(Integer, ForeignKey("duty_locations.id"), nullable=True)
    min_assignees = Column(Integer, default=1)
    max_assignees = Column(Integer, nullable=True)        # no upper bound when empty
    max_per_week_student = Column(Integer, nullable=True)  # falls back to the school config
    requires_acceptance = Column(Boolean, nullable=True)   # falls back to the school config
    instructions = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    category_ref = relationship("DutyCategory")
    roster_type = relationship("RosterType")
    default_time_slot = relationship("TimeSlot")
    default_location = relationship("Location")

    def __repr__(self):
        return f"<DutyDefinition(id={self.id}, code={self.code})>"

    def get_allowed_kinds(self) -> frozenset[AssigneeKind]:
        """Assignee kinds allowed on this duty"""
        if not self.allowed_assignee_kinds:
            return frozenset(DEFAULT_ASSIGNEE_KINDS)
        return frozenset(AssigneeKind(k) for k in json.loads(self.allowed_assignee_kinds))

    def set_allowed_kinds(self, kinds) -> None:
        wanted = {AssigneeKind(k) for k in kinds}
        ordered = [k.value for k in AssigneeKind if k in wanted]
        self.allowed_assignee_kinds = json.dumps(ordered)

    @property
    def is_high_risk(self) -> bool:
        return self.risk_level == RiskLevel.HIGH
