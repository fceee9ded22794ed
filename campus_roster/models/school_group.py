from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.sql import func
from campus_roster.database import AdminBase


class SchoolGroup(AdminBase):
    """School group (tenant) registry; each group owns one database"""
    __tablename__ = "school_groups"

    id = Column(String(64), primary_key=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    db_name = Column(String(100), nullable=False)  # tenant database name
    db_host = Column(String(200), nullable=True)   # overrides the default tenant host
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<SchoolGroup(id={self.id}, code={self.code}, db={self.db_name})>"
