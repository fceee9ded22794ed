from sqlalchemy.orm import Session
from typing import Optional

from campus_roster.config import Settings, get_settings
from campus_roster.exceptions import TenantNotFoundError, ValidationError
from campus_roster.models.school_group import SchoolGroup


class TenantService:
    """School group registry (admin database)"""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    def get_group(self, group_id: str) -> SchoolGroup:
        """Active group by id"""
        group = self.db.query(SchoolGroup).filter(SchoolGroup.id == group_id).first()
        if not group or not group.is_active:
            raise TenantNotFoundError(f"School group {group_id} not found")
        return group

    def get_active_groups(self) -> list[SchoolGroup]:
        return self.db.query(SchoolGroup).filter(
            SchoolGroup.is_active == True
        ).order_by(SchoolGroup.code).all()

    def register_group(
        self,
        group_id: str,
        code: str,
        name: str,
        db_name: str,
        db_host: Optional[str] = None
    ) -> SchoolGroup:
        """Register an already provisioned group database"""
        existing = self.db.query(SchoolGroup).filter(
            (SchoolGroup.id == group_id) | (SchoolGroup.code == code)
        ).first()
        if existing:
            raise ValidationError(f"School group {group_id}/{code} is already registered")

        group = SchoolGroup(
            id=group_id,
            code=code,
            name=name,
            db_name=db_name,
            db_host=db_host,
            is_active=True
        )
        self.db.add(group)
        self.db.commit()
        self.db.refresh(group)
        return group

    def database_url_for(self, group: SchoolGroup) -> str:
        """Build the tenant database URL from the settings template"""
        return self.settings.tenant_database_url_template.format(
            db_name=group.db_name,
            db_host=group.db_host or self.settings.tenant_db_host,
            db_port=self.settings.tenant_db_port,
            db_user=self.settings.tenant_db_user,
            db_password=self.settings.tenant_db_password,
        )

    def resolve_database_url(self, group_id: str) -> str:
        return self.database_url_for(self.get_group(group_id))
