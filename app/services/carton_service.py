"""
Carton Service - Business Logic for cartons and warehouse locations
"""
from sqlalchemy.orm import Session
from sqlalchemy import select, func, or_, case, distinct
from typing import List, Dict, Optional
from dataclasses import dataclass, field
import logging

from app.core.database import transaction
from app.core.exceptions import ValidationError, InvalidStateError, NotFoundError
from app.models import (
    Carton, CartonContent, CartonLocation, CartonStatus, Product,
    AmazonShipment, ShipmentContent, ShipmentStatus
)
from .ledger_service import LedgerService

logger = logging.getLogger(__name__)

LOCATIONS = [loc.value for loc in CartonLocation]
STATUSES = [s.value for s in CartonStatus]


@dataclass
class MoveResult:
    location: str
    moved: List[Dict] = field(default_factory=list)
    skipped: List[Dict] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "location": self.location,
            "moved_count": len(self.moved),
            "skipped_count": len(self.skipped),
            "moved": self.moved,
            "skipped": self.skipped,
        }


class CartonService:
    """Carton listing, moves and archiving"""
    
    @staticmethod
    def validate_location(location: str) -> str:
        if location not in LOCATIONS:
            raise ValidationError(f"Invalid location. Must be: {', '.join(LOCATIONS)}")
        return location
    
    @staticmethod
    def get_cartons(
        db: Session,
        location: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None
    ) -> List[Dict]:
        """Cartons with content totals, newest first"""
        if location:
            CartonService.validate_location(location)
        if status and status not in STATUSES:
            raise ValidationError(f"Invalid status. Must be: {', '.join(STATUSES)}")
        
        query = db.query(
            Carton,
            func.count(distinct(CartonContent.product_id)).label("product_count"),
            func.coalesce(func.sum(CartonContent.boxes_initial), 0).label("total_boxes_initial"),
            func.coalesce(func.sum(CartonContent.boxes_current), 0).label("total_boxes_current"),
            func.coalesce(func.sum(CartonContent.boxes_sent_to_amazon), 0).label("total_boxes_sent"),
        ).outerjoin(
            CartonContent, CartonContent.carton_id == Carton.id
        )
        
        if location:
            query = query.filter(Carton.location == location)
        if status:
            query = query.filter(Carton.status == status)
        if search:
            # Match on any product inside the carton, but keep totals over all contents
            term = f"%{search}%"
            matching = select(CartonContent.carton_id).join(
                Product, CartonContent.product_id == Product.id
            ).where(
                or_(Product.product_name.ilike(term), Product.fnsku.ilike(term))
            )
            query = query.filter(or_(
                Carton.carton_number.ilike(term),
                Carton.id.in_(matching)
            ))
        
        rows = query.group_by(Carton.id).order_by(Carton.created_at.desc(), Carton.id.desc()).all()
        
        results = []
        for carton, product_count, initial, current, sent in rows:
            results.append({
                **CartonService.serialize(carton),
                "product_count": int(product_count),
                "total_boxes_initial": int(initial),
                "total_boxes_current": int(current),
                "total_boxes_sent": int(sent),
            })
        return results
    
    @staticmethod
    def get_carton_details(db: Session, carton_id: int) -> Dict:
        carton = db.query(Carton).filter(Carton.id == carton_id).first()
        if not carton:
            raise NotFoundError("Carton", carton_id)
        
        rows = db.query(CartonContent, Product).join(
            Product, CartonContent.product_id == Product.id
        ).filter(
            CartonContent.carton_id == carton_id
        ).order_by(Product.product_name).all()
        
        contents = [
            {
                "content_id": content.id,
                "product_id": product.id,
                "product_name": product.product_name,
                "artikel": product.artikel,
                "fnsku": product.fnsku,
                "pairs_per_box": product.pairs_per_box,
                "boxes_initial": content.boxes_initial,
                "boxes_current": content.boxes_current,
                "boxes_sent_to_amazon": content.boxes_sent_to_amazon,
                "pairs_current": content.boxes_current * product.pairs_per_box,
            }
            for content, product in rows
        ]
        
        movements = LedgerService.get_movements(db, carton_id=carton_id, limit=50)
        
        return {
            "carton": CartonService.serialize(carton),
            "contents": contents,
            "totals": {
                "boxes_initial": sum(c["boxes_initial"] for c in contents),
                "boxes_current": sum(c["boxes_current"] for c in contents),
                "boxes_sent_to_amazon": sum(c["boxes_sent_to_amazon"] for c in contents),
                "pairs_current": sum(c["pairs_current"] for c in contents),
            },
            "movements": [
                {
                    "movement_id": m.id,
                    "product_id": m.product_id,
                    "movement_type": m.movement_type,
                    "boxes": m.boxes,
                    "shipment_id": m.shipment_id,
                    "notes": m.notes,
                    "created_at": m.created_at.isoformat() if m.created_at else None,
                }
                for m in movements
            ],
        }
    
    @staticmethod
    def get_locations_summary(db: Session) -> Dict:
        """Per-location carton counts and box totals, every location always present"""
        rows = db.query(
            Carton.location,
            func.count(distinct(Carton.id)).label("total_cartons"),
            func.count(distinct(case((Carton.status == CartonStatus.IN_STOCK.value, Carton.id)))).label("in_stock_cartons"),
            func.count(distinct(case((Carton.status == CartonStatus.EMPTY.value, Carton.id)))).label("empty_cartons"),
            func.count(distinct(case((Carton.status == CartonStatus.ARCHIVED.value, Carton.id)))).label("archived_cartons"),
            func.count(distinct(CartonContent.product_id)).label("unique_products"),
            func.coalesce(func.sum(CartonContent.boxes_initial), 0).label("total_boxes_initial"),
            func.coalesce(func.sum(CartonContent.boxes_current), 0).label("total_boxes_current"),
            func.coalesce(func.sum(CartonContent.boxes_sent_to_amazon), 0).label("total_boxes_sent"),
            func.coalesce(func.sum(CartonContent.boxes_current * Product.pairs_per_box), 0).label("total_pairs_current"),
        ).outerjoin(
            CartonContent, CartonContent.carton_id == Carton.id
        ).outerjoin(
            Product, CartonContent.product_id == Product.id
        ).group_by(Carton.location).all()
        
        metrics = [
            "total_cartons", "in_stock_cartons", "empty_cartons", "archived_cartons",
            "unique_products", "total_boxes_initial", "total_boxes_current",
            "total_boxes_sent", "total_pairs_current",
        ]
        summary = {loc: {"location": loc, **{m: 0 for m in metrics}} for loc in LOCATIONS}
        for row in rows:
            summary[row.location] = {"location": row.location, **{m: int(getattr(row, m) or 0) for m in metrics}}
        
        # unique_products is per location; the grand total would double count
        totals = {m: sum(s[m] for s in summary.values()) for m in metrics if m != "unique_products"}
        return {"summary": summary, "totals": totals}
    
    @staticmethod
    def move_cartons(
        db: Session,
        carton_ids: List[int],
        location: str,
        notes: Optional[str] = None
    ) -> MoveResult:
        """
        Bulk move to a new location.
        
        Archived cartons and cartons already at the target are skipped and
        reported, not treated as errors.
        """
        CartonService.validate_location(location)
        result = MoveResult(location=location)
        
        with transaction(db):
            for carton_id in dict.fromkeys(carton_ids):
                carton = db.query(Carton).filter(Carton.id == carton_id).with_for_update().first()
                if not carton:
                    result.skipped.append({"carton_id": carton_id, "reason": "Carton not found"})
                    continue
                if carton.is_archived:
                    result.skipped.append({
                        "carton_id": carton.id,
                        "carton_number": carton.carton_number,
                        "reason": "Cannot move archived carton"
                    })
                    continue
                if carton.location == location:
                    result.skipped.append({
                        "carton_id": carton.id,
                        "carton_number": carton.carton_number,
                        "reason": f"Carton is already in {location}"
                    })
                    continue
                
                old_location = carton.location
                carton.location = location
                carton.updated_at = func.now()
                if notes:
                    carton.notes = f"{carton.notes}\n{notes}" if carton.notes else notes
                
                result.moved.append({
                    "carton_id": carton.id,
                    "carton_number": carton.carton_number,
                    "old_location": old_location,
                    "new_location": location
                })
        
        logger.info(f"Moved {len(result.moved)} cartons to {location}, skipped {len(result.skipped)}")
        return result
    
    @staticmethod
    def archive_carton(db: Session, carton_id: int) -> Carton:
        """Retire an empty carton. Archived cartons take no further moves or shipments."""
        with transaction(db):
            carton = db.query(Carton).filter(Carton.id == carton_id).with_for_update().first()
            if not carton:
                raise NotFoundError("Carton", carton_id)
            if carton.is_archived:
                raise InvalidStateError(
                    f"Carton {carton.carton_number} is already archived", current_state=carton.status
                )
            
            remaining = db.query(func.coalesce(func.sum(CartonContent.boxes_current), 0)).filter(
                CartonContent.carton_id == carton_id
            ).scalar()
            if int(remaining) > 0:
                raise InvalidStateError(
                    f"Carton {carton.carton_number} still holds {int(remaining)} boxes",
                    current_state=carton.status
                )
            
            outstanding = db.query(func.count(distinct(AmazonShipment.id))).join(
                ShipmentContent, ShipmentContent.shipment_id == AmazonShipment.id
            ).filter(
                ShipmentContent.carton_id == carton_id,
                AmazonShipment.status.in_([ShipmentStatus.PREPARED.value, ShipmentStatus.SENT.value])
            ).scalar()
            if outstanding:
                # A recall would put boxes back into this carton
                raise InvalidStateError(
                    f"Carton {carton.carton_number} is referenced by {outstanding} open or sent shipment(s)",
                    current_state=carton.status
                )
            
            carton.status = CartonStatus.ARCHIVED.value
        
        db.refresh(carton)
        logger.info(f"Archived carton {carton.carton_number}")
        return carton
    
    @staticmethod
    def serialize(carton: Carton) -> Dict:
        return {
            "carton_id": carton.id,
            "carton_number": carton.carton_number,
            "location": carton.location,
            "status": carton.status,
            "notes": carton.notes,
            "created_at": carton.created_at.isoformat() if carton.created_at else None,
            "updated_at": carton.updated_at.isoformat() if carton.updated_at else None,
        }
