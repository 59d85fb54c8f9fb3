"""
Box Movement Log - append-only audit trail of ledger changes
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from app.core import Base
from .base import IdMixin


class MovementKind(str, enum.Enum):
    RECEIVED = "received"
    SENT_TO_AMAZON = "sent_to_amazon"
    RECALLED = "recalled"


class BoxMovementLog(Base, IdMixin):
    """One row per inventory-affecting event; never updated or deleted"""
    __tablename__ = "box_movement_log"
    
    carton_id = Column(Integer, ForeignKey("cartons.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    
    # Movement info
    movement_type = Column(String(20), nullable=False)  # received, sent_to_amazon, recalled
    boxes = Column(Integer, nullable=False)  # Positive or negative
    
    # Reference
    shipment_id = Column(Integer, ForeignKey("amazon_shipments.id", ondelete="SET NULL"), index=True)
    
    # Metadata
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"))
    
    # Relationships
    carton = relationship("Carton")
    product = relationship("Product")
