"""
Roster master data seed script

Loads the default catalogs (data/roster_defaults.py) into one school.
Existing codes are skipped, so the script can be re-run safely.

Usage: python -m campus_roster.scripts.seed_roster seed --group G1 --school S1
"""

from datetime import time

from campus_roster.data.roster_defaults import (
    CATEGORY_CODES,
    DUTIES,
    DUTY_CATEGORIES,
    DUTY_ROLES,
    LOCATIONS,
    ROSTER_TYPES,
    TIME_SLOTS,
)
from campus_roster.database import SessionLocal, init_db, open_tenant_session
from campus_roster.models.duty_category import DutyCategory
from campus_roster.models.duty_definition import DutyDefinition
from campus_roster.models.duty_role import DutyRole
from campus_roster.models.location import Location
from campus_roster.models.roster_type import RosterType
from campus_roster.models.time_slot import TimeSlot
from campus_roster.services.catalog_service import CatalogService
from campus_roster.services.config_service import RosterConfigService
from campus_roster.services.tenant_service import TenantService
from campus_roster.tenancy import TenantContext


def _seed_catalog(catalog: CatalogService, model, rows: list[dict]) -> int:
    existing = {item.code for item in catalog.list_items(model, include_inactive=True)}
    created = 0
    for row in rows:
        if row["code"] in existing:
            continue
        catalog.create_item(model, **row)
        created += 1
    return created


def seed_school(ctx: TenantContext) -> dict:
    """
    Seed one school's catalogs and config

    Returns:
        number of rows created per catalog
    """
    catalog = CatalogService(ctx)
    result = {
        "roster_types": _seed_catalog(
            catalog, RosterType, [{**row, "is_system": True} for row in ROSTER_TYPES]
        ),
        "categories": _seed_catalog(catalog, DutyCategory, DUTY_CATEGORIES),
        "time_slots": _seed_catalog(catalog, TimeSlot, [
            {
                **row,
                "start_time": time.fromisoformat(row["start_time"]),
                "end_time": time.fromisoformat(row["end_time"]),
            }
            for row in TIME_SLOTS
        ]),
        "locations": _seed_catalog(catalog, Location, LOCATIONS),
        "roles": _seed_catalog(catalog, DutyRole, DUTY_ROLES),
    }

    # duties reference the catalogs above by code
    ids = {
        model: {item.code: item.id for item in catalog.list_items(model)}
        for model in (RosterType, DutyCategory, TimeSlot, Location)
    }
    duties = []
    for duty in DUTIES:
        row = {k: v for k, v in duty.items() if k not in ("roster_type", "time_slot", "location")}
        row["roster_type_id"] = ids[RosterType].get(duty.get("roster_type"))
        row["category_id"] = ids[DutyCategory].get(CATEGORY_CODES.get(duty["category"]))
        row["default_time_slot_id"] = ids[TimeSlot].get(duty.get("time_slot"))
        row["default_location_id"] = ids[Location].get(duty.get("location"))
        duties.append(row)
    result["duties"] = _seed_catalog(catalog, DutyDefinition, duties)

    RosterConfigService(ctx).get_config()
    ctx.db.commit()
    return result


def seed_roster(group_id: str, school_id: str) -> bool:
    """Resolve the group database and seed the school"""
    init_db()
    admin_db = SessionLocal()

    try:
        database_url = TenantService(admin_db).resolve_database_url(group_id)
    finally:
        admin_db.close()

    db = open_tenant_session(database_url)
    try:
        ctx = TenantContext(db=db, group_id=group_id, school_id=school_id, actor_id="seed")
        result = seed_school(ctx)
        for name, count in result.items():
            print(f"  {name}: {count} created")
        print(f"\nSeeded default roster data for {group_id}/{school_id}")
        return True

    except Exception as e:
        db.rollback()
        print(f"Seeding failed: {e}")
        return False

    finally:
        db.close()


def list_catalogs(group_id: str, school_id: str):
    """Print the school's catalogs"""
    admin_db = SessionLocal()
    try:
        database_url = TenantService(admin_db).resolve_database_url(group_id)
    finally:
        admin_db.close()

    db = open_tenant_session(database_url)
    try:
        catalog = CatalogService(TenantContext(db=db, group_id=group_id, school_id=school_id))
        for model in (RosterType, DutyCategory, TimeSlot, Location, DutyRole, DutyDefinition):
            items = catalog.list_items(model, include_inactive=True)
            print(f"\n=== {model.__name__} ({len(items)}) ===")
            for item in items:
                status = "active" if item.is_active else "inactive"
                print(f"  {item.code}: {item.name} ({status})")
    finally:
        db.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Roster master data")
    parser.add_argument("action", choices=["seed", "list"], help="action to run")
    parser.add_argument("--group", "-g", required=True, help="school group id")
    parser.add_argument("--school", "-s", required=True, help="school id")

    args = parser.parse_args()

    if args.action == "seed":
        print(f"Seeding roster data into {args.group}/{args.school}...")
        seed_roster(args.group, args.school)
    elif args.action == "list":
        list_catalogs(args.group, args.school)
