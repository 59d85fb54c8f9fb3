"""
Planned Stock - forecasted inbound boxes not yet in the ledger
"""
from sqlalchemy import Column, String, Integer, Date, Boolean, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
import enum

from app.core import Base
from .base import IdMixin, TimestampMixin


class PlannedScope(str, enum.Enum):
    COMMITTED = "committed"
    SIMULATION = "simulation"


class PlannedStock(Base, IdMixin, TimestampMixin):
    """Additional boxes expected for a product"""
    __tablename__ = "planned_stock"
    __table_args__ = (
        CheckConstraint("quantity_boxes >= 1", name="ck_planned_stock_quantity"),
    )
    
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity_boxes = Column(Integer, nullable=False)
    eta_date = Column(Date, nullable=True)
    scope = Column(String(20), nullable=False, default=PlannedScope.COMMITTED.value)
    label = Column(String(200))
    is_active = Column(Boolean, nullable=False, default=True)
    
    # Relationships
    product = relationship("Product", back_populates="planned_stock")
