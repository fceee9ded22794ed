"""
Tenant schema migration script

Brings every active school group database up to the latest schema
version (or --target). Migrations also run automatically the first time
the API touches a group database; this script does it ahead of time.

Usage:
    python -m campus_roster.scripts.migrate_tenants
    python -m campus_roster.scripts.migrate_tenants --group G1 --target 1
"""

from campus_roster.database import (
    MIGRATIONS,
    SessionLocal,
    create_db_engine,
    current_schema_version,
    init_db,
    run_migrations,
)
from campus_roster.services.tenant_service import TenantService


def migrate_tenants(group_id: str = None, target: int = None) -> dict:
    """
    Run pending migrations for one or all groups

    Returns:
        {group_id: schema version after the run}
    """
    init_db()
    admin_db = SessionLocal()

    try:
        tenant_service = TenantService(admin_db)
        if group_id:
            groups = [tenant_service.get_group(group_id)]
        else:
            groups = tenant_service.get_active_groups()

        if not groups:
            print("No active school groups, nothing to migrate")
            return {}

        print(f"Found {len(groups)} group database(s) to migrate")
        versions = {}
        for group in groups:
            engine = create_db_engine(tenant_service.database_url_for(group))
            try:
                before = current_schema_version(engine)
                applied = run_migrations(engine, target=target)
                versions[group.id] = current_schema_version(engine)
                print(f"  {group.code} ({group.db_name}): v{before} -> v{versions[group.id]}, {applied} applied")
            except Exception as e:
                print(f"  {group.code} ({group.db_name}): migration failed: {e}")
                raise
            finally:
                engine.dispose()

        latest = MIGRATIONS[-1][0]
        behind = [g for g, v in versions.items() if v < latest]
        print("\n" + "=" * 50)
        print(f"Migrated {len(versions)} group(s); latest schema version is v{latest}")
        if behind and target is None:
            print(f"Still behind: {', '.join(behind)}")
        print("=" * 50)
        return versions

    finally:
        admin_db.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Tenant schema migrations")
    parser.add_argument("--group", "-g", help="only this school group")
    parser.add_argument("--target", "-t", type=int, help="stop at this schema version")

    args = parser.parse_args()
    migrate_tenants(args.group, args.target)
