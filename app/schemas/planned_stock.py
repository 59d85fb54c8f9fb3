"""
Planned Stock Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import date

class PlannedStockCreate(BaseModel):
    product_id: int
    quantity_boxes: int = Field(ge=1)
    eta_date: Optional[date] = None
    scope: str = "committed"
    label: Optional[str] = None
    is_active: bool = True

class PlannedStockUpdate(BaseModel):
    quantity_boxes: Optional[int] = Field(default=None, ge=1)
    eta_date: Optional[date] = None
    scope: Optional[str] = None
    label: Optional[str] = None
    is_active: Optional[bool] = None
