"""
Product Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict

class ProductCreate(BaseModel):
    fnsku: str = Field(min_length=1)
    product_name: str = Field(min_length=1)
    artikel: Optional[str] = None
    asin: Optional[str] = None
    sku: Optional[str] = None
    ean: Optional[str] = None
    color: Optional[str] = None
    pairs_per_box: int = Field(default=1, gt=0)
    average_weekly_sales: float = Field(default=0, ge=0)

class ProductUpdate(BaseModel):
    product_name: Optional[str] = None
    artikel: Optional[str] = None
    asin: Optional[str] = None
    sku: Optional[str] = None
    ean: Optional[str] = None
    color: Optional[str] = None
    pairs_per_box: Optional[int] = Field(default=None, gt=0)
    average_weekly_sales: Optional[float] = Field(default=None, ge=0)
    is_active: Optional[bool] = None

class SeasonalFactorsUpdate(BaseModel):
    factors: Dict[str, float]
