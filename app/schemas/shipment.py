"""
Shipment Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date

class ShipmentCreate(BaseModel):
    shipment_reference: str = Field(min_length=1, max_length=100)
    shipment_date: date
    notes: Optional[str] = None

class BoxLine(BaseModel):
    carton_id: int
    product_id: int
    boxes_to_send: int  # > 0 is checked per line by the service

class AddBoxesRequest(BaseModel):
    boxes: List[BoxLine] = Field(min_length=1)

class RecallRequest(BaseModel):
    notes: Optional[str] = None
