from sqlalchemy.exc import IntegrityError

from campus_roster.exceptions import NotFoundError, ValidationError
from campus_roster.logger import get_logger
from campus_roster.domain.scheduling import TimeWindow, parse_weekdays
from campus_roster.models.duty_category import DutyCategory
from campus_roster.models.duty_definition import DutyDefinition
from campus_roster.models.duty_role import DutyRole
from campus_roster.models.location import Location
from campus_roster.models.roster_assignment import RosterAssignment, AssignmentStatus
from campus_roster.models.roster_type import RosterType
from campus_roster.models.time_slot import TimeSlot
from campus_roster.tenancy import TenantContext

logger = get_logger(__name__)

CATALOG_MODELS = (RosterType, DutyCategory, TimeSlot, Location, DutyRole, DutyDefinition)

# Columns the API never writes directly
PROTECTED_FIELDS = {"id", "school_id", "code", "created_at", "updated_at"}

# Assignments that still hold their time slot
LIVE_ASSIGNMENT_STATUSES = (
    AssignmentStatus.PENDING_APPROVAL,
    AssignmentStatus.PENDING_ACCEPTANCE,
    AssignmentStatus.SCHEDULED,
)


def _clearable(model, name: str) -> bool:
    """Optional columns without a default may be set back to NULL"""
    column = model.__table__.columns.get(name)
    return column is not None and column.nullable and column.default is None and not column.primary_key


class CatalogService:
    """Master catalogs: roster types, categories, time slots, locations, roles, duties"""

    def __init__(self, ctx: TenantContext):
        self.ctx = ctx
        self.db = ctx.db

    # ===== Read =====

    def list_items(self, model, include_inactive: bool = False, **filters) -> list:
        """Catalog rows of this school, active only by default"""
        query = self.db.query(model).filter(model.school_id == self.ctx.school_id)
        if not include_inactive:
            query = query.filter(model.is_active == True)
        if filters:
            query = query.filter_by(**{k: v for k, v in filters.items() if v is not None})

        if model is TimeSlot:
            query = query.order_by(TimeSlot.display_order, TimeSlot.start_time)
        elif model is DutyCategory:
            query = query.order_by(DutyCategory.display_order, DutyCategory.name)
        else:
            query = query.order_by(model.code)
        return query.all()

    def get_item(self, model, item_id: int):
        item = self.db.query(model).filter(
            model.id == item_id,
            model.school_id == self.ctx.school_id
        ).first()
        if not item:
            raise NotFoundError(f"{model.__name__} {item_id} not found")
        return item

    def get_active_item(self, model, item_id: int):
        """Like get_item, but soft-deleted rows count as missing"""
        item = self.get_item(model, item_id)
        if not item.is_active:
            raise NotFoundError(f"{model.__name__} {item_id} is inactive")
        return item

    # ===== Write =====

    def create_item(self, model, code: str, name: str, **fields):
        """
        Create a catalog row.

        Args:
            model: one of CATALOG_MODELS
            code: short code, unique per school (stored upper-case)
            name: display name
            fields: remaining columns; JSON-backed sets take plain lists

        Returns:
            the created row
        """
        code = (code or "").strip().upper()
        if not code:
            raise ValidationError("code is required")
        if not name or not name.strip():
            raise ValidationError("name is required")

        duplicate = self.db.query(model).filter(
            model.school_id == self.ctx.school_id,
            model.code == code
        ).first()
        if duplicate:
            raise ValidationError(f"{model.__name__} code {code} already exists")

        item = model(school_id=self.ctx.school_id, code=code, name=name.strip(), is_active=True)
        self._apply(item, fields)
        self._validate(item)

        self.db.add(item)
        self._commit(model, code)
        self.db.refresh(item)
        logger.info("%s %s created for school %s", model.__name__, code, self.ctx.school_id)
        return item

    def update_item(self, model, item_id: int, **fields):
        """Partial update of the given fields; None clears an optional field"""
        item = self.get_item(model, item_id)
        if fields.get("code") is not None and fields["code"].strip().upper() != item.code:
            raise ValidationError("code cannot be changed")
        fields.pop("code", None)

        if model is TimeSlot:
            self._guard_slot_window(item, fields)

        try:
            self._apply(item, fields, clear_nulls=True)
            self._validate(item)
        except Exception:
            self.db.rollback()
            raise
        self._commit(model, item.code)
        self.db.refresh(item)
        return item

    def deactivate_item(self, model, item_id: int):
        """Soft delete: historical assignments keep pointing at the row"""
        item = self.get_item(model, item_id)
        item.is_active = False
        self.db.commit()
        self.db.refresh(item)
        logger.info("%s %s deactivated", model.__name__, item.code)
        return item

    # ===== Helpers =====

    def _apply(self, item, fields: dict, clear_nulls: bool = False) -> None:
        """Set fields on a row; None is skipped unless clear_nulls is set"""
        for name, value in fields.items():
            if value is None and not clear_nulls:
                continue
            if isinstance(item, TimeSlot) and name == "applies_to_days":
                weekdays = parse_weekdays(value)
                if not weekdays:
                    raise ValidationError("A time slot needs at least one weekday")
                item.set_weekdays(weekdays)
                continue
            if isinstance(item, DutyDefinition) and name == "allowed_assignee_kinds":
                if value is None:
                    raise ValidationError("A duty needs at least one allowed assignee kind")
                try:
                    item.set_allowed_kinds(value)
                except ValueError as exc:
                    raise ValidationError(f"Unknown assignee kind in {value}") from exc
                continue
            if name in PROTECTED_FIELDS or not hasattr(type(item), name):
                raise ValidationError(f"{type(item).__name__} has no writable field '{name}'")
            if value is None and not _clearable(type(item), name):
                raise ValidationError(f"{type(item).__name__} field '{name}' cannot be empty")
            setattr(item, name, value)

    def _validate(self, item) -> None:
        if isinstance(item, TimeSlot):
            if item.start_time is None or item.end_time is None:
                raise ValidationError("A time slot needs start_time and end_time")
            TimeWindow(item.start_time, item.end_time)
        elif isinstance(item, Location):
            if item.capacity is not None and item.capacity < 0:
                raise ValidationError("capacity cannot be negative")
        elif isinstance(item, DutyDefinition):
            self._validate_duty(item)

    def _validate_duty(self, duty: DutyDefinition) -> None:
        if not duty.get_allowed_kinds():
            raise ValidationError("A duty needs at least one allowed assignee kind")

        min_assignees = duty.min_assignees if duty.min_assignees is not None else 1
        if min_assignees < 1:
            raise ValidationError("min_assignees must be at least 1")
        if duty.max_assignees is not None and duty.max_assignees < min_assignees:
            raise ValidationError("max_assignees must not be below min_assignees")
        if duty.max_per_week_student is not None and duty.max_per_week_student < 1:
            raise ValidationError("max_per_week_student must be at least 1")

        references = (
            (TimeSlot, duty.default_time_slot_id),
            (Location, duty.default_location_id),
            (DutyCategory, duty.category_id),
            (RosterType, duty.roster_type_id),
        )
        for model, ref_id in references:
            if ref_id is not None:
                self.get_active_item(model, ref_id)

    def _guard_slot_window(self, slot: TimeSlot, fields: dict) -> None:
        """Slot times are frozen while live assignments use the slot"""
        new_start = fields.get("start_time")
        new_end = fields.get("end_time")
        changed = (
            (new_start is not None and new_start != slot.start_time)
            or (new_end is not None and new_end != slot.end_time)
        )
        if not changed:
            return

        in_use = self.db.query(RosterAssignment.id).filter(
            RosterAssignment.school_id == self.ctx.school_id,
            RosterAssignment.time_slot_id == slot.id,
            RosterAssignment.status.in_(LIVE_ASSIGNMENT_STATUSES)
        ).first()
        if in_use:
            raise ValidationError(
                f"Time slot {slot.code} is used by active assignments; its times cannot change"
            )

    def _commit(self, model, code: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ValidationError(f"{model.__name__} code {code} already exists") from exc
