from pydantic import BaseModel, Field
from typing import Optional


class RosterConfigUpdate(BaseModel):
    """Partial update of the school roster policy"""
    student_max_duties_per_week: Optional[int] = Field(default=None, ge=1)
    student_duties_require_approval: Optional[bool] = None
    high_risk_requires_approval: Optional[bool] = None
    requires_acceptance: Optional[bool] = None
    auto_complete_past_duties: Optional[bool] = None
    notify_assignees: Optional[bool] = None
    notify_supervisors: Optional[bool] = None


class RosterConfigResponse(BaseModel):
    school_id: str
    student_max_duties_per_week: int
    student_duties_require_approval: bool
    high_risk_requires_approval: bool
    requires_acceptance: bool
    auto_complete_past_duties: bool
    notify_assignees: bool
    notify_supervisors: bool

    class Config:
        from_attributes = True
