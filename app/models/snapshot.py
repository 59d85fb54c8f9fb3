"""
Amazon Inventory Snapshot
"""
from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, func

from app.core import Base
from .base import IdMixin


class AmazonSnapshot(Base, IdMixin):
    """Boxes available at Amazon per FNSKU on a snapshot date"""
    __tablename__ = "amazon_snapshots"
    
    snapshot_date = Column(Date, nullable=False, index=True)
    fnsku = Column(String(50), nullable=False, index=True)
    available_boxes = Column(Integer, nullable=False, default=0)
    uploaded_by = Column(Integer, ForeignKey("users.id"))
    upload_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
