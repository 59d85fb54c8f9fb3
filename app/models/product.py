"""
Product Models
"""
from sqlalchemy import Column, String, Float, Boolean, Integer, CheckConstraint
from sqlalchemy.orm import relationship
from app.core import Base
from .base import IdMixin, TimestampMixin

MONTH_KEYS = ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"]

class Product(Base, IdMixin, TimestampMixin):
    """Product Master"""
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("pairs_per_box >= 0", name="ck_products_pairs_per_box"),
    )
    
    fnsku = Column(String(50), unique=True, nullable=False, index=True)
    artikel = Column(String(100), index=True)
    asin = Column(String(20))
    sku = Column(String(100))
    ean = Column(String(20))
    product_name = Column(String(300), nullable=False)
    color = Column(String(50))
    pairs_per_box = Column(Integer, nullable=False, default=1)
    average_weekly_sales = Column(Float, nullable=False, default=0)  # unit per AWS_UNIT config
    is_active = Column(Boolean, default=True)
    
    # Seasonal demand multipliers, one per month
    factor_jan = Column(Float, nullable=False, default=1.0)
    factor_feb = Column(Float, nullable=False, default=1.0)
    factor_mar = Column(Float, nullable=False, default=1.0)
    factor_apr = Column(Float, nullable=False, default=1.0)
    factor_may = Column(Float, nullable=False, default=1.0)
    factor_jun = Column(Float, nullable=False, default=1.0)
    factor_jul = Column(Float, nullable=False, default=1.0)
    factor_aug = Column(Float, nullable=False, default=1.0)
    factor_sep = Column(Float, nullable=False, default=1.0)
    factor_oct = Column(Float, nullable=False, default=1.0)
    factor_nov = Column(Float, nullable=False, default=1.0)
    factor_dec = Column(Float, nullable=False, default=1.0)
    
    # Relationships
    carton_contents = relationship("CartonContent", back_populates="product")
    planned_stock = relationship("PlannedStock", back_populates="product", cascade="all, delete-orphan")
    
    @property
    def seasonal_factors(self) -> dict:
        return {key: getattr(self, f"factor_{key}") for key in MONTH_KEYS}
    
    def set_seasonal_factors(self, factors: dict) -> None:
        """Missing months fall back to 1.0"""
        for key in MONTH_KEYS:
            value = factors.get(key)
            setattr(self, f"factor_{key}", float(value) if value is not None else 1.0)
