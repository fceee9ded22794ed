from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "Campus Roster"
    app_version: str = "1.0.0"

    # Tenant registry (admin database holding school groups)
    admin_database_url: str = "sqlite:///./campus_admin.db"

    # Tenant databases, one per school group
    tenant_database_url_template: str = (
        "postgresql+psycopg2://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
    )
    tenant_db_host: str = "localhost"
    tenant_db_port: int = 5433
    tenant_db_user: str = "school_admin"
    tenant_db_password: str = ""

    # Application settings
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]

    # Cron job secret (optional, verifies scheduler requests)
    cron_secret: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings"""
    return Settings()
