"""
Config Service - runtime coverage settings

system_config rows override the environment defaults from Settings.
"""
from sqlalchemy.orm import Session
import logging

from app.core.config import Settings
from app.models import SystemConfig
from .forecast_service import CoverageConfig, normalize_aws_unit

logger = logging.getLogger(__name__)


class ConfigService:
    
    @staticmethod
    def get_value(db: Session, key: str):
        row = db.query(SystemConfig).filter(SystemConfig.config_key == key).first()
        return row.config_value if row else None
    
    @staticmethod
    def get_coverage_config(db: Session, settings: Settings) -> CoverageConfig:
        lead_time = settings.LEAD_TIME_WEEKS
        raw_lead_time = ConfigService.get_value(db, "LEAD_TIME_WEEKS")
        if raw_lead_time is not None:
            try:
                lead_time = int(raw_lead_time)
            except ValueError:
                logger.warning(f"Ignoring non-numeric LEAD_TIME_WEEKS in system_config: {raw_lead_time!r}")
        if lead_time < 0:
            lead_time = 0
        
        aws_unit = ConfigService.get_value(db, "AWS_UNIT") or settings.AWS_UNIT
        
        return CoverageConfig(lead_time_weeks=lead_time, aws_unit=normalize_aws_unit(aws_unit))
