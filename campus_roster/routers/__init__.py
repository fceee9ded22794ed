from campus_roster.routers.catalog import router as catalog_router
from campus_roster.routers.assignments import router as assignments_router
from campus_roster.routers.reports import router as reports_router
from campus_roster.routers.roster_config import router as roster_config_router
from campus_roster.routers.cron import router as cron_router

__all__ = [
    "catalog_router",
    "assignments_router",
    "reports_router",
    "roster_config_router",
    "cron_router",
]
