from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from campus_roster.database import TenantBase


class SchemaVersion(TenantBase):
    """Applied schema migrations of a tenant database"""
    __tablename__ = "schema_version"

    version = Column(Integer, primary_key=True, autoincrement=False)
    description = Column(String(200), nullable=False)
    applied_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<SchemaVersion(version={self.version})>"
