"""
Login Attempt Audit Log
"""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func

from app.core import Base
from .base import IdMixin

class LoginAttempt(Base, IdMixin):
    """Every login attempt, successful or not"""
    __tablename__ = "login_attempts"
    
    username = Column(String(100), nullable=False, index=True)
    ip_address = Column(String(50))
    success = Column(Boolean, nullable=False, default=False)
    attempted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
