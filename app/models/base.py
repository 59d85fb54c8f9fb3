"""
Base Model Mixins
"""
from sqlalchemy import Column, Integer, DateTime, func

class IdMixin:
    """Mixin for autoincrement integer primary key"""
    id = Column(Integer, primary_key=True, autoincrement=True)

class TimestampMixin:
    """Mixin for created_at and updated_at timestamps"""
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
