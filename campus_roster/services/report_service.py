from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import contains_eager

from campus_roster.exceptions import ValidationError
from campus_roster.models.duty_definition import DutyDefinition, AssigneeKind, RiskLevel
from campus_roster.models.roster_assignment import RosterAssignment, AssignmentStatus
from campus_roster.models.roster_assignment_date import (
    RosterAssignmentDate,
    OccurrenceStatus,
    OCCUPYING_STATUSES,
)
from campus_roster.tenancy import TenantContext

UNSCHEDULED_SLOT_NAME = "Unscheduled"


def occurrence_entry(occurrence: RosterAssignmentDate) -> dict:
    """Flat row used by every report"""
    assignment = occurrence.assignment
    window = assignment.window
    duty = assignment.duty
    location = assignment.location
    return {
        "occurrence_id": occurrence.id,
        "assignment_id": assignment.id,
        "date": occurrence.date.isoformat(),
        "status": occurrence.status.value,
        "assignment_status": assignment.status.value,
        "duty_id": duty.id,
        "duty_code": duty.code,
        "duty_name": duty.name,
        "risk_level": duty.risk_level.value if duty.risk_level else None,
        "assignee_kind": occurrence.assignee_kind.value,
        "assignee_id": occurrence.assignee_id,
        "supervisor_id": assignment.supervisor_id,
        "location": location.name if location else assignment.custom_location,
        **window.to_dict(),
    }


class ReportService:
    """Read-only roster reports"""

    def __init__(self, ctx: TenantContext):
        self.ctx = ctx
        self.db = ctx.db

    def _occurrences(self, include_cancelled: bool = False):
        query = self.db.query(RosterAssignmentDate).join(
            RosterAssignment,
            RosterAssignmentDate.roster_assignment_id == RosterAssignment.id
        ).options(
            contains_eager(RosterAssignmentDate.assignment)
        ).filter(
            RosterAssignment.school_id == self.ctx.school_id
        )
        if not include_cancelled:
            query = query.filter(
                RosterAssignment.status.notin_((AssignmentStatus.CANCELLED, AssignmentStatus.DECLINED)),
                RosterAssignmentDate.status.in_(OCCUPYING_STATUSES)
            )
        return query

    # ===== Daily sheet =====

    def daily_sheet(self, day: date) -> dict:
        """
        Everyone on duty on one day, grouped by time slot.

        Returns:
            {"date", "total", "slots": [{"time_slot_id", "name", "start", "end", "duties": [...]}]}
        """
        occurrences = self._occurrences().filter(
            RosterAssignmentDate.date == day
        ).all()

        slots = {}
        for occurrence in occurrences:
            assignment = occurrence.assignment
            window = assignment.window
            custom = assignment.custom_start_time is not None
            slot = None if custom else assignment.time_slot
            key = (window.start, window.end, slot.id if slot else None)
            group = slots.setdefault(key, {
                "time_slot_id": slot.id if slot else None,
                "name": slot.name if slot else UNSCHEDULED_SLOT_NAME,
                **window.to_dict(),
                "duties": [],
            })
            group["duties"].append(occurrence_entry(occurrence))

        ordered = []
        for key in sorted(slots, key=lambda k: (k[0], k[1], k[2] or 0)):
            group = slots[key]
            group["duties"].sort(key=lambda e: (e["duty_name"], e["assignee_id"]))
            ordered.append(group)

        return {"date": day.isoformat(), "total": len(occurrences), "slots": ordered}

    # ===== Per assignee =====

    def assignee_duties(
        self,
        assignee_kind: AssigneeKind,
        assignee_id: str,
        start_date: date,
        end_date: Optional[date] = None,
        include_cancelled: bool = False
    ) -> list[dict]:
        """One person's duties in a date range ("my duties")"""
        end_date = end_date or start_date
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date")

        occurrences = self._occurrences(include_cancelled).filter(
            RosterAssignmentDate.assignee_kind == assignee_kind,
            RosterAssignmentDate.assignee_id == assignee_id,
            RosterAssignmentDate.date.between(start_date, end_date)
        ).all()
        entries = [occurrence_entry(o) for o in occurrences]
        return sorted(entries, key=lambda e: (e["date"], e["start"]))

    def supervised_students(
        self,
        supervisor_id: str,
        start_date: date,
        end_date: Optional[date] = None
    ) -> list[dict]:
        """Student duties a supervisor is responsible for"""
        end_date = end_date or start_date
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date")

        occurrences = self._occurrences().filter(
            RosterAssignment.supervisor_id == supervisor_id,
            RosterAssignmentDate.assignee_kind == AssigneeKind.STUDENT,
            RosterAssignmentDate.date.between(start_date, end_date)
        ).all()
        entries = [occurrence_entry(o) for o in occurrences]
        return sorted(entries, key=lambda e: (e["date"], e["start"], e["assignee_id"]))

    # ===== Aggregates =====

    def workload_summary(
        self,
        start_date: date,
        end_date: date,
        assignee_kind: Optional[AssigneeKind] = None
    ) -> list[dict]:
        """
        Occurrence counts per assignee over a date range.

        "live" counts occurrences that still hold time (pending, scheduled,
        accepted, completed); heaviest first.
        """
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date")

        query = self.db.query(
            RosterAssignmentDate.assignee_kind,
            RosterAssignmentDate.assignee_id,
            RosterAssignmentDate.status,
            func.count(RosterAssignmentDate.id)
        ).join(
            RosterAssignment,
            RosterAssignmentDate.roster_assignment_id == RosterAssignment.id
        ).filter(
            RosterAssignment.school_id == self.ctx.school_id,
            RosterAssignmentDate.date.between(start_date, end_date)
        )
        if assignee_kind is not None:
            query = query.filter(RosterAssignmentDate.assignee_kind == assignee_kind)
        rows = query.group_by(
            RosterAssignmentDate.assignee_kind,
            RosterAssignmentDate.assignee_id,
            RosterAssignmentDate.status
        ).all()

        summary = {}
        for kind, assignee_id, status, count in rows:
            kind = AssigneeKind(kind)
            status = OccurrenceStatus(status)
            item = summary.setdefault((kind, assignee_id), {
                "assignee_kind": kind.value,
                "assignee_id": assignee_id,
                "live": 0,
                **{s.value: 0 for s in OccurrenceStatus},
            })
            item[status.value] += count
            if status in OCCUPYING_STATUSES:
                item["live"] += count

        return sorted(summary.values(), key=lambda i: (-i["live"], i["assignee_kind"], i["assignee_id"]))

    def duty_policy_warnings(self) -> list[dict]:
        """Active high-risk duties that do not require a supervisor"""
        duties = self.db.query(DutyDefinition).filter(
            DutyDefinition.school_id == self.ctx.school_id,
            DutyDefinition.is_active == True,
            DutyDefinition.risk_level == RiskLevel.HIGH,
            DutyDefinition.supervisor_required == False
        ).order_by(DutyDefinition.code).all()
        return [
            {
                "duty_id": d.id,
                "duty_code": d.code,
                "duty_name": d.name,
                "warning": "High-risk duty without a required supervisor",
            }
            for d in duties
        ]
