"""
Reservation Service - boxes still free for new shipment allocations

Reservations are never stored as a counter. They are the live sum of
boxes_sent over prepared shipments, recomputed on every call.
"""
from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Dict, Optional

from app.core.exceptions import NotFoundError
from app.models import (
    AmazonShipment, ShipmentContent, ShipmentStatus,
    Carton, CartonContent, CartonLocation, CartonStatus, Product
)
from .ledger_service import LedgerService

SHIPPABLE_LOCATIONS = [CartonLocation.WML.value, CartonLocation.GMR.value]


class ReservationService:
    """Reservation arithmetic over prepared shipments"""
    
    @staticmethod
    def reserved_boxes(
        db: Session,
        carton_id: int,
        product_id: int,
        exclude_shipment_id: Optional[int] = None
    ) -> int:
        """Boxes held by prepared shipments for this pair"""
        query = db.query(func.coalesce(func.sum(ShipmentContent.boxes_sent), 0)).join(
            AmazonShipment, ShipmentContent.shipment_id == AmazonShipment.id
        ).filter(
            ShipmentContent.carton_id == carton_id,
            ShipmentContent.product_id == product_id,
            AmazonShipment.status == ShipmentStatus.PREPARED.value
        )
        
        if exclude_shipment_id is not None:
            query = query.filter(AmazonShipment.id != exclude_shipment_id)
        
        return int(query.scalar() or 0)
    
    @staticmethod
    def available_for_shipment(
        db: Session,
        carton_id: int,
        product_id: int,
        exclude_shipment_id: Optional[int] = None
    ) -> int:
        """boxes_current minus reservations of the other prepared shipments"""
        boxes_current = LedgerService.get_available(db, carton_id, product_id)
        reserved = ReservationService.reserved_boxes(db, carton_id, product_id, exclude_shipment_id)
        return boxes_current - reserved
    
    @staticmethod
    def reservation_map(db: Session, exclude_shipment_id: Optional[int] = None) -> Dict[tuple, int]:
        """(carton_id, product_id) -> reserved boxes, in one query"""
        query = db.query(
            ShipmentContent.carton_id,
            ShipmentContent.product_id,
            func.sum(ShipmentContent.boxes_sent).label("reserved")
        ).join(
            AmazonShipment, ShipmentContent.shipment_id == AmazonShipment.id
        ).filter(
            AmazonShipment.status == ShipmentStatus.PREPARED.value
        )
        
        if exclude_shipment_id is not None:
            query = query.filter(AmazonShipment.id != exclude_shipment_id)
        
        rows = query.group_by(ShipmentContent.carton_id, ShipmentContent.product_id).all()
        return {(r.carton_id, r.product_id): int(r.reserved or 0) for r in rows}
    
    @staticmethod
    def get_available_cartons(db: Session, exclude_shipment_id: Optional[int] = None) -> List[Dict]:
        """
        In-stock WML/GMR cartons with per-product availability.
        Cartons with nothing left to allocate are omitted.
        """
        if exclude_shipment_id is not None:
            exists = db.query(AmazonShipment.id).filter(AmazonShipment.id == exclude_shipment_id).first()
            if not exists:
                raise NotFoundError("Shipment", exclude_shipment_id)
        
        reserved_map = ReservationService.reservation_map(db, exclude_shipment_id)
        
        cartons = db.query(Carton).filter(
            Carton.status == CartonStatus.IN_STOCK.value,
            Carton.location.in_(SHIPPABLE_LOCATIONS)
        ).order_by(Carton.location, Carton.carton_number).all()
        
        results = []
        for carton in cartons:
            rows = db.query(CartonContent, Product).join(
                Product, CartonContent.product_id == Product.id
            ).filter(
                CartonContent.carton_id == carton.id
            ).order_by(Product.product_name).all()
            
            products = []
            for content, product in rows:
                reserved = reserved_map.get((carton.id, product.id), 0)
                products.append({
                    "content_id": content.id,
                    "product_id": product.id,
                    "product_name": product.product_name,
                    "artikel": product.artikel,
                    "fnsku": product.fnsku,
                    "pairs_per_box": product.pairs_per_box,
                    "boxes_current": content.boxes_current,
                    "pairs_current": content.boxes_current * product.pairs_per_box,
                    "boxes_reserved": reserved,
                    "boxes_available_for_shipment": content.boxes_current - reserved
                })
            
            total_available = sum(p["boxes_available_for_shipment"] for p in products)
            if total_available <= 0:
                continue
            
            results.append({
                "carton_id": carton.id,
                "carton_number": carton.carton_number,
                "location": carton.location,
                "status": carton.status,
                "product_count": len(products),
                "total_boxes_current": sum(p["boxes_current"] for p in products),
                "total_boxes_reserved": sum(p["boxes_reserved"] for p in products),
                "total_boxes_available_for_shipment": total_available,
                "products": products
            })
        
        return results
