"""
Master Tables: AppUser, SystemConfig
"""
from sqlalchemy import Column, String, Boolean, DateTime, Text
import enum

from app.core import Base
from .base import IdMixin, TimestampMixin


class UserRoleCode(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class AppUser(Base, IdMixin, TimestampMixin):
    """Application User"""
    __tablename__ = "users"
    
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(200))
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRoleCode.USER.value)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True))
    
    @property
    def is_admin(self) -> bool:
        return self.role == UserRoleCode.ADMIN.value


class SystemConfig(Base):
    """Key/value runtime configuration (LEAD_TIME_WEEKS, AWS_UNIT)"""
    __tablename__ = "system_config"
    
    config_key = Column(String(100), primary_key=True)
    config_value = Column(String(500), nullable=False)
    description = Column(Text)
