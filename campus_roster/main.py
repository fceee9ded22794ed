from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from contextlib import asynccontextmanager

from campus_roster.config import get_settings
from campus_roster.database import init_db
from campus_roster.exceptions import RosterError
from campus_roster.logger import configure_logging, get_logger
from campus_roster.routers import (
    catalog_router,
    assignments_router,
    reports_router,
    roster_config_router,
    cron_router,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    configure_logging()
    logger.info("Initialising admin database...")
    init_db()
    logger.info("Admin database ready")

    yield

    logger.info("Shutting down")


# Settings
settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    description="Duty rostering for schools: catalogs, conflict-checked assignments, acceptance workflow",
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(catalog_router)
app.include_router(roster_config_router)
app.include_router(assignments_router)
app.include_router(reports_router)
app.include_router(cron_router)


@app.exception_handler(RosterError)
async def roster_error_handler(request: Request, exc: RosterError):
    """Business errors keep their type in the response"""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal database error", "code": "database_error"}
    )


@app.get("/health")
async def health():
    """Health check"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "campus_roster.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
