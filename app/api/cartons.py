"""
Cartons API
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.core import get_db
from app.models import AppUser
from app.schemas.carton import MoveCartonsRequest
from app.services import CartonService
from app.api.auth import get_current_user

router = APIRouter(prefix="/cartons", tags=["cartons"])


@router.get("")
def list_cartons(
    location: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    cartons = CartonService.get_cartons(db, location, status, search)
    summary = CartonService.get_locations_summary(db)["summary"]
    return {"success": True, "cartons": cartons, "summary": summary, "count": len(cartons)}


@router.get("/locations/summary")
def locations_summary(
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    return {"success": True, **CartonService.get_locations_summary(db)}


@router.get("/{carton_id}")
def get_carton(
    carton_id: int,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    return {"success": True, **CartonService.get_carton_details(db, carton_id)}


@router.post("/move")
def move_cartons(
    data: MoveCartonsRequest,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    result = CartonService.move_cartons(db, data.carton_ids, data.location, data.notes)
    return {
        "success": True,
        "message": f"Moved {len(result.moved)} cartons to {result.location}",
        **result.to_dict()
    }


@router.post("/{carton_id}/archive")
def archive_carton(
    carton_id: int,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    carton = CartonService.archive_carton(db, carton_id)
    return {"success": True, "message": f"Carton {carton.carton_number} archived", "carton": CartonService.serialize(carton)}
