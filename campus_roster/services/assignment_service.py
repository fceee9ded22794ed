from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import func, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import contains_eager

from campus_roster.domain.conflicts import ConflictReport, ConflictingOccurrence
from campus_roster.domain.scheduling import (
    RecurrencePattern,
    TimeWindow,
    count_by_iso_week,
    expand_occurrences,
    iso_week_bounds,
    parse_weekdays,
)
from campus_roster.domain.workflow import (
    CANCELLABLE_ASSIGNMENT_STATUSES,
    initial_statuses,
    rollup_status,
)
from campus_roster.exceptions import (
    CapacityExceededError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from campus_roster.logger import get_logger
from campus_roster.models.audit_log import AuditAction, AuditLogEntry
from campus_roster.models.duty_definition import DutyDefinition, AssigneeKind
from campus_roster.models.duty_role import DutyRole
from campus_roster.models.location import Location
from campus_roster.models.roster_assignment import RosterAssignment, AssignmentStatus
from campus_roster.models.roster_assignment_date import (
    RosterAssignmentDate,
    OccurrenceStatus,
    OCCUPYING_STATUSES,
)
from campus_roster.models.roster_config import RosterConfig
from campus_roster.models.roster_type import RosterType
from campus_roster.models.time_slot import TimeSlot
from campus_roster.schemas.assignment import AssigneeRef, AssignmentCreate, ConflictCheckRequest
from campus_roster.services.audit_service import AuditService
from campus_roster.services.catalog_service import CatalogService
from campus_roster.services.config_service import RosterConfigService
from campus_roster.tenancy import TenantContext

logger = get_logger(__name__)

# Occurrences of these assignments no longer hold anyone's time
INACTIVE_ASSIGNMENT_STATUSES = (AssignmentStatus.CANCELLED, AssignmentStatus.DECLINED)

# Details that can change without moving the duty in time
UPDATABLE_FIELDS = frozenset({
    "supervisor_id", "location_id", "custom_location", "role_id", "notes", "priority",
})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AssignmentPlan:
    """A request resolved against the catalogs"""
    duty: DutyDefinition
    time_slot: Optional[TimeSlot]
    window: TimeWindow
    dates: list[date]
    custom_window: bool


class AssignmentService:
    """Assignment engine: conflict detection, creation, updates, cancellation, approval"""

    def __init__(self, ctx: TenantContext):
        self.ctx = ctx
        self.db = ctx.db
        self.catalog = CatalogService(ctx)
        self.audit = AuditService(ctx)

    # ===== Conflict detection =====

    def check_conflicts(self, request: ConflictCheckRequest) -> ConflictReport:
        """
        Preview conflicts for a proposed duty.

        Read only: nothing is written and no lock is taken, so the
        answer can be stale by the time create_assignment runs.
        """
        plan = self._plan(request)
        return self._find_conflicts(plan, request.assignees)

    def _plan(self, request: ConflictCheckRequest) -> AssignmentPlan:
        """Resolve duty, time window and the concrete occurrence dates"""
        duty = self.catalog.get_active_item(DutyDefinition, request.duty_id)

        slot_id = request.time_slot_id or duty.default_time_slot_id
        time_slot = self.catalog.get_active_item(TimeSlot, slot_id) if slot_id else None

        custom_window = request.custom_start_time is not None or request.custom_end_time is not None
        if custom_window:
            if request.custom_start_time is None or request.custom_end_time is None:
                raise ValidationError("custom_start_time and custom_end_time must be given together")
            window = TimeWindow(request.custom_start_time, request.custom_end_time)
        elif time_slot is not None:
            window = time_slot.window
        else:
            raise ValidationError("A time slot or a custom time window is required")

        weekdays = parse_weekdays(request.recurrence_days)
        if request.recurrence_pattern == RecurrencePattern.DAILY and not weekdays and time_slot is not None:
            weekdays = time_slot.get_weekdays()

        dates = expand_occurrences(
            request.start_date,
            request.end_date,
            request.recurrence_pattern,
            weekdays,
        )
        return AssignmentPlan(duty, time_slot, window, dates, custom_window)

    def _find_conflicts(
        self,
        plan: AssignmentPlan,
        assignees: list[AssigneeRef],
        for_update: bool = False
    ) -> ConflictReport:
        """Live occurrences of each assignee overlapping the plan's window on its dates"""
        report = ConflictReport(window=plan.window, dates=plan.dates)
        wanted = set(plan.dates)

        for ref in assignees:
            kind = AssigneeKind(ref.kind)
            report.add_assignee(kind.value, ref.id)

            query = self.db.query(RosterAssignmentDate).join(
                RosterAssignment,
                RosterAssignmentDate.roster_assignment_id == RosterAssignment.id
            ).options(
                contains_eager(RosterAssignmentDate.assignment)
            ).filter(
                RosterAssignment.school_id == self.ctx.school_id,
                RosterAssignment.status.notin_(INACTIVE_ASSIGNMENT_STATUSES),
                RosterAssignmentDate.assignee_kind == kind,
                RosterAssignmentDate.assignee_id == ref.id,
                RosterAssignmentDate.status.in_(OCCUPYING_STATUSES),
                RosterAssignmentDate.date.between(plan.dates[0], plan.dates[-1])
            ).order_by(RosterAssignmentDate.date, RosterAssignmentDate.id)
            if for_update:
                query = query.with_for_update(of=RosterAssignmentDate)

            for occurrence in query.all():
                if occurrence.date not in wanted:
                    continue
                existing = occurrence.assignment
                existing_window = existing.window
                if not existing_window.overlaps(plan.window):
                    continue
                report.add_conflict(kind.value, ref.id, ConflictingOccurrence(
                    assignment_id=existing.id,
                    occurrence_id=occurrence.id,
                    duty_id=existing.duty_id,
                    duty_name=existing.duty.name if existing.duty else None,
                    date=occurrence.date,
                    window=existing_window,
                    status=occurrence.status.value,
                ))

        return report

    # ===== Creation =====

    def create_assignment(self, request: AssignmentCreate) -> list[RosterAssignment]:
        """
        Create one assignment (with its dated occurrences) per assignee.

        Validation, capacity and conflict checks run under per-assignee
        locks in the same transaction as the inserts. All assignees are
        created or none is.

        Args:
            request: duty, assignees, dates and window; force plus
                override_reason books over conflicts

        Returns:
            the created assignments, in request order

        Raises:
            ValidationError, NotFoundError, CapacityExceededError, ConflictError
        """
        plan = None
        try:
            plan = self._plan(request)
            self._validate_request(plan, request)
            config = RosterConfigService(self.ctx).get_config()

            self._lock_assignees(request.assignees)
            self._check_headcount(plan, request.assignees)
            self._check_student_cap(plan, request.assignees, config)

            report = self._find_conflicts(plan, request.assignees, for_update=True)
            if report.has_conflicts and not request.force:
                raise ConflictError(
                    f"{report.conflict_count} conflicting occurrence(s) for the proposed duty",
                    report
                )

            created = [
                self._insert_assignment(plan, request, ref, config, report)
                for ref in request.assignees
            ]
            self.db.commit()
        except IntegrityError as exc:
            # unique index on live occurrences: a concurrent booking won
            self.db.rollback()
            report = self._find_conflicts(plan, request.assignees) if plan is not None else None
            raise ConflictError("The assignee is already booked for this time slot", report) from exc
        except Exception:
            self.db.rollback()
            raise

        for assignment in created:
            self.db.refresh(assignment)
        logger.info(
            "Created %d assignment(s) for duty %s, %d occurrence(s) each",
            len(created), plan.duty.code, len(plan.dates)
        )
        return created

    def _validate_request(self, plan: AssignmentPlan, request: AssignmentCreate) -> None:
        duty = plan.duty

        keys = [(AssigneeKind(ref.kind), ref.id) for ref in request.assignees]
        if len(set(keys)) != len(keys):
            raise ValidationError("The same assignee is listed more than once")

        allowed = duty.get_allowed_kinds()
        for kind, assignee_id in keys:
            if kind not in allowed:
                raise ValidationError(
                    f"Duty {duty.code} cannot be assigned to a {kind.value} ({assignee_id})"
                )

        if duty.supervisor_required and not request.supervisor_id:
            raise ValidationError(f"Duty {duty.code} requires a supervisor")

        if request.force and not (request.override_reason or "").strip():
            raise ValidationError("override_reason is required when forcing an assignment")

        references = (
            (RosterType, request.roster_type_id),
            (Location, request.location_id),
            (DutyRole, request.role_id),
        )
        for model, ref_id in references:
            if ref_id is not None:
                self.catalog.get_active_item(model, ref_id)

    def _lock_assignees(self, assignees: list[AssigneeRef]) -> None:
        """Serialize bookings per assignee (PostgreSQL advisory locks, sorted to avoid deadlocks)"""
        if self.db.get_bind().dialect.name != "postgresql":
            return
        keys = sorted({
            f"{self.ctx.school_id}:{AssigneeKind(ref.kind).value}:{ref.id}" for ref in assignees
        })
        for key in keys:
            self.db.execute(text("SELECT pg_advisory_xact_lock(hashtext(:key))"), {"key": key})

    def _live_occurrences(self):
        return self.db.query(RosterAssignmentDate).join(
            RosterAssignment,
            RosterAssignmentDate.roster_assignment_id == RosterAssignment.id
        ).filter(
            RosterAssignment.school_id == self.ctx.school_id,
            RosterAssignment.status.notin_(INACTIVE_ASSIGNMENT_STATUSES),
            RosterAssignmentDate.status.in_(OCCUPYING_STATUSES)
        )

    def _check_headcount(self, plan: AssignmentPlan, assignees: list[AssigneeRef]) -> None:
        """min/max assignees of the duty, counting people already on overlapping occurrences"""
        duty = plan.duty
        count = len(assignees)
        min_assignees = duty.min_assignees or 1
        if count < min_assignees:
            raise ValidationError(f"Duty {duty.code} needs at least {min_assignees} assignee(s)")
        if duty.max_assignees is None:
            return
        if count > duty.max_assignees:
            raise ValidationError(f"Duty {duty.code} allows at most {duty.max_assignees} assignee(s)")

        wanted = set(plan.dates)
        occurrences = self._live_occurrences().options(
            contains_eager(RosterAssignmentDate.assignment)
        ).filter(
            RosterAssignment.duty_id == duty.id,
            RosterAssignmentDate.date.between(plan.dates[0], plan.dates[-1])
        ).all()

        existing = Counter(
            o.date for o in occurrences
            if o.date in wanted and o.assignment.window.overlaps(plan.window)
        )
        for day, booked in sorted(existing.items()):
            if booked + count > duty.max_assignees:
                raise ValidationError(
                    f"Duty {duty.code} already has {booked} assignee(s) on {day.isoformat()}; "
                    f"at most {duty.max_assignees} allowed"
                )

    def _check_student_cap(
        self,
        plan: AssignmentPlan,
        assignees: list[AssigneeRef],
        config: RosterConfig
    ) -> None:
        """Weekly duty cap for students, per ISO week touched by the plan"""
        cap = plan.duty.max_per_week_student or config.student_max_duties_per_week
        new_by_week = count_by_iso_week(plan.dates)

        for ref in assignees:
            if AssigneeKind(ref.kind) != AssigneeKind.STUDENT:
                continue
            for week, new_count in sorted(new_by_week.items()):
                monday, sunday = iso_week_bounds(week)
                current = self._live_occurrences().with_entities(
                    func.count(RosterAssignmentDate.id)
                ).filter(
                    RosterAssignmentDate.assignee_kind == AssigneeKind.STUDENT,
                    RosterAssignmentDate.assignee_id == ref.id,
                    RosterAssignmentDate.date.between(monday, sunday)
                ).scalar() or 0

                if current + new_count > cap:
                    raise CapacityExceededError(
                        f"Student {ref.id} would have {current + new_count} duties in week "
                        f"{week[0]}-W{week[1]:02d} (limit {cap})"
                    )

    def _insert_assignment(
        self,
        plan: AssignmentPlan,
        request: AssignmentCreate,
        ref: AssigneeRef,
        config: RosterConfig,
        report: ConflictReport
    ) -> RosterAssignment:
        duty = plan.duty
        kind = AssigneeKind(ref.kind)

        needs_approval = (
            (duty.is_high_risk and config.high_risk_requires_approval)
            or (kind == AssigneeKind.STUDENT and config.student_duties_require_approval)
        )
        needs_acceptance = (
            duty.requires_acceptance if duty.requires_acceptance is not None
            else config.requires_acceptance
        )
        status, occurrence_status = initial_statuses(bool(needs_approval), bool(needs_acceptance))
        conflicts = report.conflicts_for(kind.value, ref.id)

        assignment = RosterAssignment(
            school_id=self.ctx.school_id,
            duty_id=duty.id,
            roster_type_id=request.roster_type_id or duty.roster_type_id,
            start_date=request.start_date,
            end_date=request.end_date or request.start_date,
            recurrence_pattern=request.recurrence_pattern,
            time_slot_id=plan.time_slot.id if plan.time_slot else None,
            custom_start_time=request.custom_start_time,
            custom_end_time=request.custom_end_time,
            location_id=request.location_id or duty.default_location_id,
            custom_location=request.custom_location,
            role_id=request.role_id,
            assignee_kind=kind,
            assignee_id=ref.id,
            supervisor_id=request.supervisor_id,
            status=status,
            requires_approval=bool(needs_approval),
            requires_acceptance=bool(needs_acceptance),
            notes=request.notes,
            priority=request.priority,
            is_emergency=bool(conflicts),
            created_by=self.ctx.actor_id,
        )
        assignment.set_recurrence_days(parse_weekdays(request.recurrence_days))
        self.db.add(assignment)
        self.db.flush()

        # custom windows and forced double bookings stay out of the slot unique index
        overridden = {c.date for c in conflicts}
        for day in plan.dates:
            occurrence_slot_id = (
                None if plan.custom_window or day in overridden else assignment.time_slot_id
            )
            self.db.add(RosterAssignmentDate(
                roster_assignment_id=assignment.id,
                date=day,
                status=occurrence_status,
                assignee_kind=kind,
                assignee_id=ref.id,
                time_slot_id=occurrence_slot_id,
            ))
        self.db.flush()

        self.audit.record(
            assignment,
            AuditAction.CREATED,
            new={**assignment.snapshot(), "occurrences": len(plan.dates)},
        )
        if conflicts:
            self.audit.record(
                assignment,
                AuditAction.OVERRIDE,
                new={"conflicts": [c.to_dict() for c in conflicts]},
                reason=request.override_reason,
            )
            logger.warning(
                "Conflict override: %s %s booked on duty %s over %d conflict(s) by %s: %s",
                kind.value, ref.id, duty.code, len(conflicts),
                self.ctx.actor_id, request.override_reason
            )
        return assignment

    # ===== Updates =====

    def update_assignment(self, assignment_id: int, fields: dict) -> RosterAssignment:
        """
        Change the details of an open assignment that do not move it in time.

        Dates, window and assignee are fixed; moving a duty is a cancel plus
        a new create so the conflict rules always run.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        if "priority" in fields and fields["priority"] is None:
            raise ValidationError("priority cannot be empty")

        assignment = self._get_for_update(assignment_id)
        if assignment.status not in CANCELLABLE_ASSIGNMENT_STATUSES:
            raise InvalidStateError(
                f"Assignment {assignment_id} is {assignment.status.value} and can no longer be changed"
            )
        if "supervisor_id" in fields and not fields["supervisor_id"] and assignment.duty.supervisor_required:
            raise ValidationError(f"Duty {assignment.duty.code} requires a supervisor")
        for model, key in ((Location, "location_id"), (DutyRole, "role_id")):
            if fields.get(key) is not None:
                self.catalog.get_active_item(model, fields[key])

        old = assignment.snapshot()
        for key, value in fields.items():
            setattr(assignment, key, value)
        new = assignment.snapshot()
        if new != old:
            self.audit.record(assignment, AuditAction.UPDATED, old=old, new=new)
        self.db.commit()
        self.db.refresh(assignment)
        logger.info(
            "Assignment %s updated by %s: %s",
            assignment_id, self.ctx.actor_id, ", ".join(sorted(fields)) or "no changes"
        )
        return assignment

    # ===== Cancellation / approval =====

    def cancel_assignment(self, assignment_id: int, reason: str) -> RosterAssignment:
        """
        Cancel an assignment and every occurrence not yet final.

        Rejected once any occurrence is completed, and when already
        cancelled (so a second call writes no audit entry).
        """
        if reason is None or not reason.strip():
            raise ValidationError("A reason is required to cancel an assignment")
        reason = reason.strip()

        assignment = self._get_for_update(assignment_id)
        if assignment.status not in CANCELLABLE_ASSIGNMENT_STATUSES:
            raise InvalidStateError(
                f"Assignment {assignment_id} is {assignment.status.value} and cannot be cancelled"
            )
        if any(o.status == OccurrenceStatus.COMPLETED for o in assignment.occurrences):
            raise InvalidStateError(
                f"Assignment {assignment_id} has completed occurrences and cannot be cancelled"
            )

        old = assignment.snapshot()
        cancelled = self._close(assignment, reason)
        self.audit.record(
            assignment,
            AuditAction.CANCELLED,
            old=old,
            new={**assignment.snapshot(), "occurrences_cancelled": cancelled},
            reason=reason,
        )
        self.db.commit()
        self.db.refresh(assignment)
        logger.info("Assignment %s cancelled by %s", assignment_id, self.ctx.actor_id)
        return assignment

    def approve_assignment(
        self,
        assignment_id: int,
        approved: bool = True,
        reason: str = None
    ) -> RosterAssignment:
        """Decide a pending_approval assignment: approve it, or reject (cancel) it"""
        assignment = self._get_for_update(assignment_id)
        if assignment.status != AssignmentStatus.PENDING_APPROVAL:
            raise InvalidStateError(
                f"Assignment {assignment_id} is {assignment.status.value}, not pending approval"
            )

        old = assignment.snapshot()
        assignment.approved_by = self.ctx.actor_id
        assignment.approved_at = utcnow()
        if approved:
            assignment.status = rollup_status(o.status for o in assignment.occurrences)
            action = AuditAction.APPROVED
        else:
            self._close(assignment, reason)
            action = AuditAction.REJECTED

        self.audit.record(assignment, action, old=old, new=assignment.snapshot(), reason=reason)
        self.db.commit()
        self.db.refresh(assignment)
        logger.info("Assignment %s %s by %s", assignment_id, action.value, self.ctx.actor_id)
        return assignment

    def _close(self, assignment: RosterAssignment, reason: Optional[str]) -> int:
        """Mark cancelled and cascade to open occurrences; returns how many were cancelled"""
        assignment.status = AssignmentStatus.CANCELLED
        assignment.cancelled_by = self.ctx.actor_id
        assignment.cancelled_at = utcnow()
        assignment.cancel_reason = reason

        cancelled = 0
        for occurrence in assignment.occurrences:
            if not occurrence.is_terminal:
                occurrence.status = OccurrenceStatus.CANCELLED
                cancelled += 1
        return cancelled

    # ===== Queries =====

    def get_assignment(self, assignment_id: int) -> RosterAssignment:
        assignment = self.db.query(RosterAssignment).filter(
            RosterAssignment.id == assignment_id,
            RosterAssignment.school_id == self.ctx.school_id
        ).first()
        if not assignment:
            raise NotFoundError(f"Assignment {assignment_id} not found")
        return assignment

    def _get_for_update(self, assignment_id: int) -> RosterAssignment:
        assignment = self.db.query(RosterAssignment).filter(
            RosterAssignment.id == assignment_id,
            RosterAssignment.school_id == self.ctx.school_id
        ).with_for_update().first()
        if not assignment:
            raise NotFoundError(f"Assignment {assignment_id} not found")
        return assignment

    def list_assignments(
        self,
        status: AssignmentStatus = None,
        duty_id: int = None,
        assignee_kind: AssigneeKind = None,
        assignee_id: str = None,
        start_date: date = None,
        end_date: date = None
    ) -> list[RosterAssignment]:
        """Filtered list; a date range matches assignments overlapping it"""
        query = self.db.query(RosterAssignment).filter(
            RosterAssignment.school_id == self.ctx.school_id
        )
        if status is not None:
            query = query.filter(RosterAssignment.status == status)
        if duty_id is not None:
            query = query.filter(RosterAssignment.duty_id == duty_id)
        if assignee_kind is not None:
            query = query.filter(RosterAssignment.assignee_kind == assignee_kind)
        if assignee_id is not None:
            query = query.filter(RosterAssignment.assignee_id == assignee_id)
        if end_date is not None:
            query = query.filter(RosterAssignment.start_date <= end_date)
        if start_date is not None:
            query = query.filter(
                func.coalesce(RosterAssignment.end_date, RosterAssignment.start_date) >= start_date
            )
        return query.order_by(RosterAssignment.start_date, RosterAssignment.id).all()

    def get_occurrences(self, assignment_id: int) -> list[RosterAssignmentDate]:
        return self.get_assignment(assignment_id).occurrences

    def get_audit_trail(self, assignment_id: int) -> list[AuditLogEntry]:
        self.get_assignment(assignment_id)
        return self.audit.get_trail(assignment_id)
