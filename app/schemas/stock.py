"""
Receiving & Import Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date

class ReceiptRow(BaseModel):
    carton_number: str = Field(min_length=1)
    fnsku: str = Field(min_length=1)
    product_name: Optional[str] = None
    artikel: Optional[str] = None
    pairs_per_box: Optional[int] = Field(default=None, gt=0)
    boxes: int = Field(gt=0)

class PackingListImport(BaseModel):
    rows: List[ReceiptRow] = Field(min_length=1)

class SnapshotRow(BaseModel):
    fnsku: str = Field(min_length=1)
    available_boxes: int = Field(ge=0)

class AmazonSnapshotImport(BaseModel):
    snapshot_date: date
    rows: List[SnapshotRow] = Field(min_length=1)
