"""
Planned Stock API
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.core import get_db
from app.models import AppUser
from app.schemas.planned_stock import PlannedStockCreate, PlannedStockUpdate
from app.services import PlannedStockService
from app.api.auth import get_current_user

router = APIRouter(prefix="/planned-stock", tags=["planned-stock"])


@router.get("")
def list_planned_stock(
    product_id: Optional[int] = Query(None),
    include_simulations: bool = Query(False),
    include_future: bool = Query(False),
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    entries = PlannedStockService.get_planned_stock(
        db, product_id, include_simulations, include_future, include_inactive
    )
    return {"success": True, "planned_stock": [PlannedStockService.serialize(e) for e in entries]}


@router.post("")
def create_planned_stock(
    data: PlannedStockCreate,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    entry = PlannedStockService.create_entry(db, data)
    return {"success": True, "planned_stock": PlannedStockService.serialize(entry)}


@router.put("/{planned_id}")
def update_planned_stock(
    planned_id: int,
    data: PlannedStockUpdate,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    entry = PlannedStockService.update_entry(db, planned_id, data)
    return {"success": True, "planned_stock": PlannedStockService.serialize(entry)}


@router.delete("/{planned_id}")
def delete_planned_stock(
    planned_id: int,
    hard: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    PlannedStockService.delete_entry(db, planned_id, hard=hard)
    return {"success": True, "message": "Planned stock entry deleted" if hard else "Planned stock entry deactivated"}
