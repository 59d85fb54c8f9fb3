"""
Amazon Shipment Models

Shipment Status Flow:
    prepared -> sent      (commits reservations to the ledger)
    sent     -> recalled  (reverses the ledger mutation)
    prepared -> deleted   (hard delete, no ledger effect)
"""
from sqlalchemy import Column, String, Integer, Date, ForeignKey, Text, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
import enum

from app.core import Base
from .base import IdMixin, TimestampMixin


class ShipmentStatus(str, enum.Enum):
    PREPARED = "prepared"
    SENT = "sent"
    RECALLED = "recalled"


class AmazonShipment(Base, IdMixin, TimestampMixin):
    """Shipment batch to Amazon FBA"""
    __tablename__ = "amazon_shipments"
    
    shipment_reference = Column(String(100), unique=True, nullable=False, index=True)
    shipment_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=ShipmentStatus.PREPARED.value, index=True)
    notes = Column(Text)
    created_by = Column(Integer, ForeignKey("users.id"))
    
    # Relationships
    contents = relationship(
        "ShipmentContent",
        back_populates="shipment",
        cascade="all, delete-orphan",
        order_by="ShipmentContent.id"
    )
    creator = relationship("AppUser")


class ShipmentContent(Base, IdMixin):
    """
    Boxes of one product from one carton assigned to a shipment.
    While the shipment is prepared, boxes_sent is a reservation only.
    """
    __tablename__ = "shipment_contents"
    __table_args__ = (
        UniqueConstraint("shipment_id", "carton_id", "product_id", name="uq_shipment_contents_triple"),
        CheckConstraint("boxes_sent > 0", name="ck_shipment_contents_boxes_sent"),
    )
    
    shipment_id = Column(Integer, ForeignKey("amazon_shipments.id", ondelete="CASCADE"), nullable=False, index=True)
    carton_id = Column(Integer, ForeignKey("cartons.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    boxes_sent = Column(Integer, nullable=False)
    
    # Relationships
    shipment = relationship("AmazonShipment", back_populates="contents")
    carton = relationship("Carton")
    product = relationship("Product")
