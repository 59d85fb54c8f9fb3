"""
Amazon Shipments API
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.core import get_db
from app.models import AppUser
from app.schemas.shipment import ShipmentCreate, AddBoxesRequest, RecallRequest
from app.services import ShipmentService, ReservationService
from app.api.auth import get_current_user

router = APIRouter(prefix="/shipments", tags=["shipments"])


@router.get("")
def list_shipments(
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    shipments = ShipmentService.get_shipments(db, status)
    return {"success": True, "shipments": shipments, "count": len(shipments)}


@router.get("/available-cartons")
def available_cartons(
    exclude_shipment_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    cartons = ReservationService.get_available_cartons(db, exclude_shipment_id)
    return {"success": True, "cartons": cartons, "count": len(cartons)}


@router.get("/{shipment_id}")
def get_shipment(
    shipment_id: int,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    return {"success": True, **ShipmentService.get_shipment_details(db, shipment_id)}


@router.post("")
def create_shipment(
    data: ShipmentCreate,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    shipment = ShipmentService.create_shipment(
        db,
        shipment_reference=data.shipment_reference,
        shipment_date=data.shipment_date,
        notes=data.notes,
        created_by=current_user.id
    )
    return {
        "success": True,
        "message": f"Shipment {shipment.shipment_reference} created",
        "shipment": ShipmentService.serialize(shipment)
    }


@router.post("/{shipment_id}/boxes")
def add_boxes(
    shipment_id: int,
    data: AddBoxesRequest,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    result = ShipmentService.add_boxes(
        db, shipment_id, [line.model_dump() for line in data.boxes], user_id=current_user.id
    )
    return {
        "success": True,
        "message": f"Added {result.added_count} box entries to shipment",
        "added_count": result.added_count,
        "warnings": result.errors,
        "lines": [line.to_dict() for line in result.lines]
    }


@router.delete("/{shipment_id}/boxes/{content_id}")
def remove_boxes(
    shipment_id: int,
    content_id: int,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    released = ShipmentService.remove_boxes(db, shipment_id, content_id)
    return {"success": True, "message": "Boxes removed from shipment", "boxes_released": released}


@router.post("/{shipment_id}/send")
def send_shipment(
    shipment_id: int,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    summary = ShipmentService.send_shipment(db, shipment_id, user_id=current_user.id)
    return {
        "success": True,
        "message": f"Shipment {summary.shipment_reference} sent successfully",
        "summary": summary.to_dict()
    }


@router.post("/{shipment_id}/recall")
def recall_shipment(
    shipment_id: int,
    data: Optional[RecallRequest] = None,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    summary = ShipmentService.recall_shipment(
        db, shipment_id, notes=data.notes if data else None, user_id=current_user.id
    )
    return {
        "success": True,
        "message": f"Shipment {summary.shipment_reference} recalled, {summary.total_boxes} boxes returned to stock",
        "summary": summary.to_dict()
    }


@router.delete("/{shipment_id}")
def delete_shipment(
    shipment_id: int,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    result = ShipmentService.delete_shipment(db, shipment_id)
    return {"success": True, "message": f"Shipment {result['shipment_reference']} deleted", **result}
