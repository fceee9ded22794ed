from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, Time, UniqueConstraint
from sqlalchemy.sql import func
from campus_roster.database import TenantBase
from campus_roster.domain.scheduling import (
    SCHOOL_WEEK,
    TimeWindow,
    Weekday,
    dump_weekdays,
    parse_weekdays,
)


class TimeSlot(TenantBase):
    """Named recurring time window (e.g. Morning Gate 07:30-08:15)"""
    __tablename__ = "duty_time_slots"
    __table_args__ = (UniqueConstraint("school_id", "code", name="uq_duty_time_slots_school_code"),)

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(String(64), nullable=False, index=True)
    code = Column(String(50), nullable=False)
    name = Column(String(100), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    applies_to_days = Column(Text, default=lambda: dump_weekdays(SCHOOL_WEEK))  # JSON: weekday codes
    display_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<TimeSlot(id={self.id}, code={self.code}, {self.start_time}-{self.end_time})>"

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)

    def get_weekdays(self) -> frozenset[Weekday]:
        """Weekdays the slot applies to"""
        if self.applies_to_days is None:
            return SCHOOL_WEEK
        return parse_weekdays(self.applies_to_days)

    def set_weekdays(self, weekdays) -> None:
        self.applies_to_days = dump_weekdays(weekdays)
