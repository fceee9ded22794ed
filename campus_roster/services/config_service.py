from campus_roster.exceptions import ValidationError
from campus_roster.logger import get_logger
from campus_roster.models.roster_config import RosterConfig
from campus_roster.tenancy import TenantContext

logger = get_logger(__name__)

UPDATABLE_FIELDS = (
    "student_max_duties_per_week",
    "student_duties_require_approval",
    "high_risk_requires_approval",
    "requires_acceptance",
    "auto_complete_past_duties",
    "notify_assignees",
    "notify_supervisors",
)


class RosterConfigService:
    """Per-school roster policy"""

    def __init__(self, ctx: TenantContext):
        self.ctx = ctx
        self.db = ctx.db

    def get_config(self) -> RosterConfig:
        """
        School config, created with defaults on first read.

        Only flushes; the row is committed with the caller's transaction.
        """
        config = self.db.query(RosterConfig).filter(
            RosterConfig.school_id == self.ctx.school_id
        ).first()
        if config:
            return config

        config = RosterConfig(
            school_id=self.ctx.school_id,
            student_max_duties_per_week=3,
            student_duties_require_approval=True,
            high_risk_requires_approval=True,
            requires_acceptance=True,
            auto_complete_past_duties=True,
            notify_assignees=True,
            notify_supervisors=True,
        )
        self.db.add(config)
        self.db.flush()
        return config

    def update_config(self, **fields) -> RosterConfig:
        """Upsert: only the given (non-None) fields change"""
        cap = fields.get("student_max_duties_per_week")
        if cap is not None and cap < 1:
            raise ValidationError("student_max_duties_per_week must be at least 1")

        config = self.get_config()
        for name in UPDATABLE_FIELDS:
            value = fields.get(name)
            if value is not None:
                setattr(config, name, value)

        self.db.commit()
        self.db.refresh(config)
        logger.info("Roster config updated for school %s", self.ctx.school_id)
        return config
