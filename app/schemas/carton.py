"""
Carton Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List

class MoveCartonsRequest(BaseModel):
    carton_ids: List[int] = Field(min_length=1)
    location: str
    notes: Optional[str] = None
