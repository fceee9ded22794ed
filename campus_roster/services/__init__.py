from campus_roster.services.tenant_service import TenantService
from campus_roster.services.catalog_service import CatalogService
from campus_roster.services.config_service import RosterConfigService
from campus_roster.services.audit_service import AuditService
from campus_roster.services.assignment_service import AssignmentService
from campus_roster.services.acceptance_service import AcceptanceService
from campus_roster.services.report_service import ReportService

__all__ = [
    "TenantService",
    "CatalogService",
    "RosterConfigService",
    "AuditService",
    "AssignmentService",
    "AcceptanceService",
    "ReportService",
]
