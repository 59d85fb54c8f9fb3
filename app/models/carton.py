"""
Carton & Carton Content Models

Carton Status Flow:
    in stock -> empty      (all contents reach zero after a send)
    empty    -> in stock   (a recall restores boxes)
    archived               (terminal, no moves or shipment assignment)
"""
from sqlalchemy import Column, String, Integer, ForeignKey, Text, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
import enum

from app.core import Base
from .base import IdMixin, TimestampMixin


class CartonLocation(str, enum.Enum):
    INCOMING = "Incoming"
    WML = "WML"
    GMR = "GMR"


class CartonStatus(str, enum.Enum):
    IN_STOCK = "in stock"
    EMPTY = "empty"
    ARCHIVED = "archived"


class Carton(Base, IdMixin, TimestampMixin):
    """Physical storage unit holding boxes of one or more products"""
    __tablename__ = "cartons"
    
    carton_number = Column(String(50), unique=True, nullable=False, index=True)
    location = Column(String(20), nullable=False, default=CartonLocation.INCOMING.value, index=True)
    status = Column(String(20), nullable=False, default=CartonStatus.IN_STOCK.value, index=True)
    notes = Column(Text)
    
    # Relationships
    contents = relationship("CartonContent", back_populates="carton", cascade="all, delete-orphan")
    
    @property
    def is_archived(self) -> bool:
        return self.status == CartonStatus.ARCHIVED.value


class CartonContent(Base, IdMixin, TimestampMixin):
    """
    Ledger row: boxes of one product inside one carton.
    
    boxes_current + boxes_sent_to_amazon is conserved by send/recall.
    """
    __tablename__ = "carton_contents"
    __table_args__ = (
        UniqueConstraint("carton_id", "product_id", name="uq_carton_contents_carton_product"),
        CheckConstraint("boxes_current >= 0", name="ck_carton_contents_boxes_current"),
        CheckConstraint("boxes_sent_to_amazon >= 0", name="ck_carton_contents_boxes_sent"),
    )
    
    carton_id = Column(Integer, ForeignKey("cartons.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    boxes_initial = Column(Integer, nullable=False, default=0)
    boxes_current = Column(Integer, nullable=False, default=0)
    boxes_sent_to_amazon = Column(Integer, nullable=False, default=0)
    
    # Relationships
    carton = relationship("Carton", back_populates="contents")
    product = relationship("Product", back_populates="carton_contents")
