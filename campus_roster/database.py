import enum
from datetime import date
from functools import lru_cache

from sqlalchemy import ARRAY, Enum, create_engine, func, inspect, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from campus_roster.config import get_settings
from campus_roster.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


def create_db_engine(database_url: str) -> Engine:
    """Create an engine with per-dialect connection arguments"""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}  # SQLite needs this across threads

    return create_engine(
        database_url,
        connect_args=connect_args,
        pool_pre_ping=True  # check connections before handing them out
    )


def enum_type(enum_cls) -> Enum:
    """Store a str-Enum by value; unknown values are rejected on write"""
    return Enum(
        enum_cls,
        native_enum=False,
        length=30,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
    )


# Admin database: registry of school groups (tenants)
engine = create_db_engine(settings.admin_database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

AdminBase = declarative_base()

# Tenant databases: every roster table lives here, one database per group
TenantBase = declarative_base()


def get_db():
    """Admin database session (dependency injection)"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create the admin registry tables"""
    from campus_roster.models import school_group  # noqa: F401
    # checkfirst=True: skip tables that already exist (several workers may race here)
    AdminBase.metadata.create_all(bind=engine, checkfirst=True)


@lru_cache(maxsize=None)
def get_tenant_engine(database_url: str) -> Engine:
    """Connection pool for one tenant database, migrated on first use"""
    tenant_engine = create_db_engine(database_url)
    run_migrations(tenant_engine)
    return tenant_engine


def open_tenant_session(database_url: str) -> Session:
    """Open a session against a tenant database"""
    return Session(bind=get_tenant_engine(database_url), autoflush=False)


# ===== Schema migrations =====

# Columns renamed since the first roster schema
LEGACY_COLUMN_RENAMES = {
    "roster_assignments": {"assignee_type": "assignee_kind"},
    "duty_master": {"allowed_assignee_types": "allowed_assignee_kinds"},
}


def _create_roster_tables(conn: Connection) -> None:
    import campus_roster.models  # noqa: F401
    TenantBase.metadata.create_all(bind=conn, checkfirst=True)


def _upgrade_legacy_tables(conn: Connection) -> None:
    """
    Bring tables created by the first roster schema up to the current shape.

    create_all skips tables that already exist, so older tenant databases
    keep their old column names and lack every column added since. Columns
    are renamed and added here; per-date rows written before assignee
    columns existed are backfilled from their assignment.
    """
    import campus_roster.models  # noqa: F401

    inspector = inspect(conn)
    existing = set(inspector.get_table_names())
    for table in TenantBase.metadata.sorted_tables:
        if table.name not in existing:
            continue
        columns = {col["name"]: col for col in inspector.get_columns(table.name)}

        for old, new in LEGACY_COLUMN_RENAMES.get(table.name, {}).items():
            if old in columns and new not in columns:
                conn.execute(text(f"ALTER TABLE {table.name} RENAME COLUMN {old} TO {new}"))
                columns[new] = columns.pop(old)
                logger.info("Migration: renamed %s.%s to %s", table.name, old, new)

        if conn.dialect.name == "postgresql":
            _relax_legacy_columns(conn, table, columns)

        for column in table.columns:
            if column.name in columns:
                continue
            ddl = f"ALTER TABLE {table.name} ADD COLUMN {column.name} {column.type.compile(dialect=conn.dialect)}"
            default = _default_literal(column)
            if default is not None:
                ddl += f" DEFAULT {default}"
            conn.execute(text(ddl))
            logger.info("Migration: added %s.%s", table.name, column.name)

    if "roster_assignment_dates" in existing:
        # slot ids stay NULL: old rows may double book and must not break the slot index
        backfilled = conn.execute(text(
            "UPDATE roster_assignment_dates SET "
            "assignee_kind = (SELECT ra.assignee_kind FROM roster_assignments ra "
            "WHERE ra.id = roster_assignment_dates.roster_assignment_id), "
            "assignee_id = (SELECT ra.assignee_id FROM roster_assignments ra "
            "WHERE ra.id = roster_assignment_dates.roster_assignment_id) "
            "WHERE assignee_kind IS NULL"
        )).rowcount
        if backfilled:
            logger.info("Migration: backfilled assignees on %d per-date rows", backfilled)

    inspector = inspect(conn)
    for table in TenantBase.metadata.sorted_tables:
        if table.name not in existing:
            continue
        indexes = {ix["name"] for ix in inspector.get_indexes(table.name)}
        for index in table.indexes:
            if index.name not in indexes:
                index.create(bind=conn)


def _relax_legacy_columns(conn: Connection, table, columns: dict) -> None:
    """PostgreSQL only: native enums and arrays become the text the models store"""
    for column in table.columns:
        reflected = columns.get(column.name)
        if reflected is None or column.primary_key:
            continue
        name = f"{table.name}.{column.name}"
        if isinstance(reflected["type"], ARRAY):
            conn.execute(text(f"ALTER TABLE {table.name} ALTER COLUMN {column.name} DROP DEFAULT"))
            conn.execute(text(
                f"ALTER TABLE {table.name} ALTER COLUMN {column.name} TYPE TEXT "
                f"USING array_to_json({column.name})::text"
            ))
            logger.info("Migration: %s array stored as JSON text", name)
        elif isinstance(reflected["type"], Enum):
            conn.execute(text(f"ALTER TABLE {table.name} ALTER COLUMN {column.name} DROP DEFAULT"))
            conn.execute(text(
                f"ALTER TABLE {table.name} ALTER COLUMN {column.name} TYPE VARCHAR(30) "
                f"USING {column.name}::text"
            ))
            logger.info("Migration: %s enum stored as text", name)
        if column.nullable and not reflected["nullable"]:
            conn.execute(text(f"ALTER TABLE {table.name} ALTER COLUMN {column.name} DROP NOT NULL"))


def _default_literal(column):
    """SQL literal for a column's scalar default, None when it has none"""
    if column.default is None or not column.default.is_scalar:
        return None
    value = column.default.arg
    if isinstance(value, enum.Enum):
        value = value.value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return "'" + value.replace("'", "''") + "'"
    return None


def _legacy_pattern(row):
    """Recurrence of a legacy row; old rows often leave recurrence_pattern empty"""
    from campus_roster.domain.scheduling import RecurrencePattern

    if row["recurrence_pattern"]:
        return RecurrencePattern(row["recurrence_pattern"])
    if row["recurrence_days"]:
        return RecurrencePattern.WEEKLY
    if row["end_date"] and _as_date(row["end_date"]) != _as_date(row["start_date"]):
        return RecurrencePattern.DAILY
    return RecurrencePattern.NONE


def _expand_legacy_acceptance(conn: Connection) -> None:
    """
    One-time move of assignment-level acceptance onto per-date rows.

    Databases touched by the old ALTER script carry
    roster_assignments.acceptance_status and have no per-date rows; every
    such assignment is expanded into its occurrences here. Rows whose dates
    cannot be worked out are logged and left without occurrences.
    """
    from campus_roster.domain.scheduling import RecurrencePattern, expand_occurrences, parse_weekdays
    from campus_roster.exceptions import RosterError
    from campus_roster.models.roster_assignment import AssignmentStatus
    from campus_roster.models.roster_assignment_date import OccurrenceStatus, OCCUPYING_STATUSES

    columns = {col["name"] for col in inspect(conn).get_columns("roster_assignments")}
    has_legacy_column = "acceptance_status" in columns
    legacy_select = ", ra.acceptance_status" if has_legacy_column else ""

    rows = conn.execute(text(
        "SELECT ra.id, ra.start_date, ra.end_date, ra.recurrence_pattern, ra.recurrence_days, "
        "ra.status, ra.assignee_kind, ra.assignee_id, ra.time_slot_id"
        f"{legacy_select} "
        "FROM roster_assignments ra "
        "WHERE NOT EXISTS (SELECT 1 FROM roster_assignment_dates rad "
        "WHERE rad.roster_assignment_id = ra.id)"
    )).mappings().all()

    legacy_map = {
        "pending": OccurrenceStatus.PENDING_ACCEPTANCE,
        "accepted": OccurrenceStatus.ACCEPTED,
        "declined": OccurrenceStatus.DECLINED,
    }
    parent_map = {
        AssignmentStatus.CANCELLED.value: OccurrenceStatus.CANCELLED,
        AssignmentStatus.COMPLETED.value: OccurrenceStatus.COMPLETED,
        AssignmentStatus.DECLINED.value: OccurrenceStatus.DECLINED,
    }

    occupying = {s.value for s in OCCUPYING_STATUSES}
    clash_query = text(
        "SELECT COUNT(*) FROM roster_assignment_dates "
        "WHERE assignee_kind = :kind AND assignee_id = :assignee_id AND date = :date "
        "AND time_slot_id = :slot_id AND status IN ("
        + ", ".join(f"'{value}'" for value in sorted(occupying)) + ")"
    )

    expanded = 0
    skipped = 0
    for row in rows:
        try:
            start_date = _as_date(row["start_date"])
            end_date = _as_date(row["end_date"]) if row["end_date"] else None
            pattern = _legacy_pattern(row)
            weekdays = parse_weekdays(row["recurrence_days"])
            if pattern == RecurrencePattern.DAILY and not weekdays:
                weekdays = None
            dates = expand_occurrences(start_date, end_date, pattern, weekdays)
        except (ValueError, RosterError) as exc:
            logger.warning("Migration: assignment %s not expanded: %s", row["id"], exc)
            skipped += 1
            continue

        status = parent_map.get(row["status"])
        if status is None:
            legacy_value = row["acceptance_status"] if has_legacy_column else None
            status = legacy_map.get(legacy_value, OccurrenceStatus.ACCEPTED)

        for occurrence_date in dates:
            slot_id = row["time_slot_id"]
            params = {"kind": row["assignee_kind"], "assignee_id": row["assignee_id"], "date": occurrence_date.isoformat()}
            if slot_id is not None and status.value in occupying and conn.execute(
                clash_query, {**params, "slot_id": slot_id}
            ).scalar():
                # old data may hold double bookings; keep the row, out of the unique slot index
                logger.warning(
                    "Migration: assignment %s double-books %s %s on %s",
                    row["id"], row["assignee_kind"], row["assignee_id"], occurrence_date
                )
                slot_id = None
            conn.execute(
                text(
                    "INSERT INTO roster_assignment_dates "
                    "(roster_assignment_id, date, status, assignee_kind, assignee_id, time_slot_id) "
                    "VALUES (:assignment_id, :date, :status, :kind, :assignee_id, :slot_id)"
                ),
                {
                    "assignment_id": row["id"],
                    "date": occurrence_date.isoformat(),
                    "status": status.value,
                    "kind": row["assignee_kind"],
                    "assignee_id": row["assignee_id"],
                    "slot_id": slot_id,
                },
            )
            expanded += 1

    if expanded:
        logger.info("Migration: expanded %d legacy occurrences", expanded)
    if skipped:
        logger.warning("Migration: %d legacy assignment(s) left without occurrences", skipped)


def _as_date(value):
    """SQLite hands DATE columns back as text"""
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    return value


MIGRATIONS = [
    (1, "create roster tables", _create_roster_tables),
    (2, "bring legacy roster tables up to the current columns", _upgrade_legacy_tables),
    (3, "expand legacy assignment acceptance into per-date rows", _expand_legacy_acceptance),
]


def current_schema_version(bind: Engine) -> int:
    """Highest applied migration (0 for an empty database)"""
    from campus_roster.models.schema_version import SchemaVersion
    SchemaVersion.__table__.create(bind=bind, checkfirst=True)
    with Session(bind=bind) as db:
        return db.query(func.max(SchemaVersion.version)).scalar() or 0


def run_migrations(bind: Engine, target: int = None) -> int:
    """
    Apply pending migrations in order, each in its own transaction.

    Args:
        bind: tenant engine
        target: stop after this version (default: latest)

    Returns:
        number of migrations applied
    """
    from campus_roster.models.schema_version import SchemaVersion

    current = current_schema_version(bind)
    applied = 0
    for version, description, step in MIGRATIONS:
        if version <= current or (target is not None and version > target):
            continue
        with bind.begin() as conn:
            step(conn)
            conn.execute(
                SchemaVersion.__table__.insert().values(version=version, description=description)
            )
        logger.info("Migration %d applied: %s", version, description)
        applied += 1
    return applied
