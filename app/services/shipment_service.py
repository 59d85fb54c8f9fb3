"""
Shipment Service - lifecycle of Amazon shipments

    prepared -> sent -> recalled
    prepared -> (deleted)

Adding boxes is per-line partial success; sending is all-or-nothing.
The two paths return different result types on purpose.
"""
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from typing import List, Dict, Optional, Tuple
from datetime import date, datetime
from dataclasses import dataclass, field
import logging

from app.core.database import transaction
from app.core.exceptions import (
    WarehouseError, ValidationError, InvalidStateError, InsufficientStockError,
    DuplicateReferenceError, NotFoundError
)
from app.models import (
    AmazonShipment, ShipmentContent, ShipmentStatus,
    Carton, CartonStatus, Product, MovementKind
)
from .ledger_service import LedgerService
from .reservation_service import ReservationService

logger = logging.getLogger(__name__)


@dataclass
class LineOutcome:
    """Result of one requested (carton, product, boxes) line"""
    index: int
    carton_id: int
    product_id: int
    boxes: int
    success: bool
    shipment_content_id: Optional[int] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "index": self.index,
            "carton_id": self.carton_id,
            "product_id": self.product_id,
            "boxes": self.boxes,
            "success": self.success,
            "shipment_content_id": self.shipment_content_id,
            "error": self.error,
            "error_code": self.error_code,
        }


@dataclass
class AddBoxesResult:
    """Per-line outcomes of an add-boxes call"""
    shipment_id: int
    lines: List[LineOutcome] = field(default_factory=list)

    @property
    def added_count(self) -> int:
        return sum(1 for line in self.lines if line.success)

    @property
    def errors(self) -> List[str]:
        return [f"Box entry {line.index}: {line.error}" for line in self.lines if not line.success]


@dataclass
class ShipmentSummary:
    """Outcome of a committed send or recall"""
    shipment_id: int
    shipment_reference: str
    status: str
    total_boxes: int
    carton_list: List[str] = field(default_factory=list)
    product_list: List[str] = field(default_factory=list)
    cartons_emptied: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "shipment_id": self.shipment_id,
            "shipment_reference": self.shipment_reference,
            "status": self.status,
            "total_boxes": self.total_boxes,
            "cartons_affected": len(self.carton_list),
            "products_affected": len(self.product_list),
            "carton_list": self.carton_list,
            "product_list": self.product_list,
            "cartons_emptied": self.cartons_emptied,
        }


class NoBoxesAddedError(ValidationError):
    """Every line of an add-boxes call was rejected"""

    code = "NO_BOXES_ADDED"

    def __init__(self, result: AddBoxesResult):
        self.result = result
        super().__init__("No boxes could be added to shipment")
        self.details = {
            "errors": result.errors,
            "lines": [line.to_dict() for line in result.lines],
        }


class ShipmentService:
    """Shipment lifecycle business logic"""
    
    # Valid status transitions
    STATUS_TRANSITIONS = {
        ShipmentStatus.PREPARED.value: [ShipmentStatus.SENT.value],
        ShipmentStatus.SENT.value: [ShipmentStatus.RECALLED.value],
        ShipmentStatus.RECALLED.value: [],
    }
    
    @staticmethod
    def _get_shipment(db: Session, shipment_id: int, lock: bool = False) -> AmazonShipment:
        query = db.query(AmazonShipment).filter(AmazonShipment.id == shipment_id)
        if lock:
            query = query.with_for_update()
        shipment = query.first()
        if not shipment:
            raise NotFoundError("Shipment", shipment_id)
        return shipment
    
    @staticmethod
    def _require_status(shipment: AmazonShipment, expected: ShipmentStatus, action: str) -> None:
        if shipment.status != expected.value:
            logger.warning(
                f"Rejected {action} of shipment {shipment.shipment_reference}: status is {shipment.status}"
            )
            raise InvalidStateError(
                f"Can only {action} shipments with status \"{expected.value}\" "
                f"(shipment {shipment.shipment_reference} is \"{shipment.status}\")",
                current_state=shipment.status
            )
    
    @staticmethod
    def _transition(shipment: AmazonShipment, new_status: ShipmentStatus) -> None:
        allowed = ShipmentService.STATUS_TRANSITIONS.get(shipment.status, [])
        if new_status.value not in allowed:
            raise InvalidStateError(
                f"Cannot change shipment status from {shipment.status} to {new_status.value}",
                current_state=shipment.status
            )
        shipment.status = new_status.value
    
    # ===================== QUERIES =====================
    
    @staticmethod
    def get_shipments(db: Session, status: Optional[str] = None) -> List[Dict]:
        """List shipments with box/carton totals"""
        if status and status not in ShipmentService.STATUS_TRANSITIONS:
            raise ValidationError(f"Invalid status filter: {status}")
        
        totals = db.query(
            ShipmentContent.shipment_id,
            func.count(func.distinct(ShipmentContent.carton_id)).label("carton_count"),
            func.count(func.distinct(ShipmentContent.product_id)).label("product_count"),
            func.sum(ShipmentContent.boxes_sent).label("total_boxes")
        ).group_by(ShipmentContent.shipment_id).all()
        totals_map = {t.shipment_id: t for t in totals}
        
        query = db.query(AmazonShipment).options(joinedload(AmazonShipment.creator))
        if status:
            query = query.filter(AmazonShipment.status == status)
        
        shipments = query.order_by(AmazonShipment.shipment_date.desc(), AmazonShipment.id.desc()).all()
        
        results = []
        for s in shipments:
            t = totals_map.get(s.id)
            results.append({
                **ShipmentService.serialize(s),
                "carton_count": int(t.carton_count) if t else 0,
                "product_count": int(t.product_count) if t else 0,
                "total_boxes": int(t.total_boxes or 0) if t else 0,
            })
        return results
    
    @staticmethod
    def get_shipment_details(db: Session, shipment_id: int) -> Dict:
        """Shipment with its contents and ledger movements"""
        shipment = ShipmentService._get_shipment(db, shipment_id)
        
        rows = db.query(ShipmentContent, Carton, Product).join(
            Carton, ShipmentContent.carton_id == Carton.id
        ).join(
            Product, ShipmentContent.product_id == Product.id
        ).filter(
            ShipmentContent.shipment_id == shipment_id
        ).order_by(Carton.carton_number, Product.product_name).all()
        
        contents = []
        for content, carton, product in rows:
            contents.append({
                "shipment_content_id": content.id,
                "carton_id": carton.id,
                "carton_number": carton.carton_number,
                "location": carton.location,
                "product_id": product.id,
                "product_name": product.product_name,
                "artikel": product.artikel,
                "fnsku": product.fnsku,
                "boxes_sent": content.boxes_sent,
                "pairs_sent": content.boxes_sent * product.pairs_per_box,
            })
        
        movements = LedgerService.get_movements(db, shipment_id=shipment_id)
        
        return {
            "shipment": ShipmentService.serialize(shipment),
            "contents": contents,
            "summary": {
                "total_boxes": sum(c["boxes_sent"] for c in contents),
                "total_pairs": sum(c["pairs_sent"] for c in contents),
                "carton_count": len({c["carton_id"] for c in contents}),
                "product_count": len({c["product_id"] for c in contents}),
            },
            "movements": [
                {
                    "movement_id": m.id,
                    "carton_id": m.carton_id,
                    "product_id": m.product_id,
                    "movement_type": m.movement_type,
                    "boxes": m.boxes,
                    "notes": m.notes,
                    "created_by": m.created_by,
                    "created_at": m.created_at.isoformat() if m.created_at else None,
                }
                for m in movements
            ],
        }
    
    @staticmethod
    def serialize(shipment: AmazonShipment) -> Dict:
        return {
            "shipment_id": shipment.id,
            "shipment_reference": shipment.shipment_reference,
            "shipment_date": shipment.shipment_date.isoformat() if shipment.shipment_date else None,
            "status": shipment.status,
            "notes": shipment.notes,
            "created_by": shipment.created_by,
            "created_by_username": shipment.creator.username if shipment.creator else None,
            "created_at": shipment.created_at.isoformat() if shipment.created_at else None,
            "updated_at": shipment.updated_at.isoformat() if shipment.updated_at else None,
        }
    
    # ===================== LIFECYCLE =====================
    
    @staticmethod
    def create_shipment(
        db: Session,
        shipment_reference: str,
        shipment_date: date,
        notes: Optional[str] = None,
        created_by: Optional[int] = None
    ) -> AmazonShipment:
        """Create an empty shipment in prepared status"""
        reference = (shipment_reference or "").strip()
        if not reference:
            raise ValidationError("Shipment reference is required")
        
        with transaction(db):
            existing = db.query(AmazonShipment.id).filter(
                AmazonShipment.shipment_reference == reference
            ).first()
            if existing:
                raise DuplicateReferenceError(reference)
            
            shipment = AmazonShipment(
                shipment_reference=reference,
                shipment_date=shipment_date,
                notes=(notes or "").strip() or None,
                status=ShipmentStatus.PREPARED.value,
                created_by=created_by
            )
            db.add(shipment)
            try:
                db.flush()
            except IntegrityError:
                # Lost a race with a concurrent create of the same reference
                raise DuplicateReferenceError(reference)
        
        db.refresh(shipment)
        logger.info(f"Created shipment {shipment.shipment_reference} (#{shipment.id})")
        return shipment
    
    @staticmethod
    def add_boxes(
        db: Session,
        shipment_id: int,
        lines: List[Dict],
        user_id: Optional[int] = None
    ) -> AddBoxesResult:
        """
        Reserve boxes for a prepared shipment.
        
        Each line is validated on its own against the live reservation
        snapshot; valid lines are committed even if others fail. Raises
        NoBoxesAddedError (and commits nothing) when every line fails.
        
        Args:
            lines: dicts with 'carton_id', 'product_id' and 'boxes_to_send'
        """
        if not lines:
            raise ValidationError("No boxes specified")
        
        result = AddBoxesResult(shipment_id=shipment_id)
        
        with transaction(db):
            shipment = ShipmentService._get_shipment(db, shipment_id, lock=True)
            ShipmentService._require_status(shipment, ShipmentStatus.PREPARED, "add boxes to")
            
            for index, line in enumerate(lines):
                raw = line if isinstance(line, dict) else {}
                carton_id, product_id, boxes = raw.get("carton_id"), raw.get("product_id"), raw.get("boxes_to_send")
                try:
                    carton_id, product_id, boxes = ShipmentService._parse_line(line)
                    content_id = ShipmentService._reserve_line(db, shipment, carton_id, product_id, boxes)
                except WarehouseError as e:
                    logger.warning(f"Shipment {shipment.shipment_reference} line {index} rejected: {e.message}")
                    result.lines.append(LineOutcome(
                        index=index, carton_id=carton_id, product_id=product_id, boxes=boxes,
                        success=False, error=e.message, error_code=e.code
                    ))
                    continue
                
                result.lines.append(LineOutcome(
                    index=index, carton_id=carton_id, product_id=product_id, boxes=boxes,
                    success=True, shipment_content_id=content_id
                ))
            
            if result.added_count == 0:
                raise NoBoxesAddedError(result)
            
            shipment.updated_at = func.now()
        
        logger.info(
            f"Shipment {shipment.shipment_reference}: added {result.added_count} of {len(lines)} box entries"
        )
        return result
    
    @staticmethod
    def _parse_line(line) -> Tuple[int, int, int]:
        """carton_id, product_id and boxes_to_send of one add-boxes line, as integers"""
        if not isinstance(line, dict):
            raise ValidationError("Box entry must be an object")
        missing = [key for key in ("carton_id", "product_id", "boxes_to_send") if line.get(key) is None]
        if missing:
            raise ValidationError(f"Missing {', '.join(missing)}")
        try:
            return int(line["carton_id"]), int(line["product_id"]), int(line["boxes_to_send"])
        except (TypeError, ValueError):
            raise ValidationError("carton_id, product_id and boxes_to_send must be integers")
    
    @staticmethod
    def _reserve_line(

        db: Session,
        shipment: AmazonShipment,
        carton_id: int,
        product_id: int,
        boxes: int
    ) -> int:
        """Validate and apply one add-boxes line. Raises on rejection, writes nothing in that case."""
        if boxes <= 0:
            raise ValidationError("Boxes to send must be greater than 0")
        
        carton = db.query(Carton).filter(Carton.id == carton_id).first()
        if not carton:
            raise NotFoundError("Carton", carton_id)
        if carton.is_archived:
            raise InvalidStateError(
                f"Carton {carton.carton_number} is archived", current_state=carton.status
            )
        
        # Lock the ledger row so concurrent reservations on it serialise
        content = LedgerService.get_content(db, carton_id, product_id, lock=True)
        if not content:
            raise NotFoundError("Product in carton", f"{product_id}/{carton.carton_number}")
        
        reserved_by_others = ReservationService.reserved_boxes(
            db, carton_id, product_id, exclude_shipment_id=shipment.id
        )
        existing = db.query(ShipmentContent).filter(
            ShipmentContent.shipment_id == shipment.id,
            ShipmentContent.carton_id == carton_id,
            ShipmentContent.product_id == product_id
        ).first()
        already_reserved = existing.boxes_sent if existing else 0
        
        # This shipment's own earlier reservation is already consumed
        available = content.boxes_current - reserved_by_others - already_reserved
        if boxes > available:
            raise InsufficientStockError(
                carton_id=carton_id,
                product_id=product_id,
                requested=boxes,
                available=max(available, 0),
                reserved=reserved_by_others + already_reserved
            )
        
        if existing:
            existing.boxes_sent = already_reserved + boxes
        else:
            existing = ShipmentContent(
                shipment_id=shipment.id,
                carton_id=carton_id,
                product_id=product_id,
                boxes_sent=boxes
            )
            db.add(existing)
        db.flush()
        return existing.id
    
    @staticmethod
    def remove_boxes(db: Session, shipment_id: int, shipment_content_id: int) -> int:
        """Drop one reservation line from a prepared shipment. Returns the boxes released."""
        with transaction(db):
            shipment = ShipmentService._get_shipment(db, shipment_id, lock=True)
            ShipmentService._require_status(shipment, ShipmentStatus.PREPARED, "remove boxes from")
            
            content = db.query(ShipmentContent).filter(
                ShipmentContent.id == shipment_content_id,
                ShipmentContent.shipment_id == shipment_id
            ).first()
            if not content:
                raise NotFoundError("Shipment content", shipment_content_id)
            
            released = content.boxes_sent
            db.delete(content)
            shipment.updated_at = func.now()
        
        logger.info(f"Shipment {shipment.shipment_reference}: removed entry #{shipment_content_id} ({released} boxes)")
        return released
    
    @staticmethod
    def send_shipment(db: Session, shipment_id: int, user_id: Optional[int] = None) -> ShipmentSummary:
        """
        Commit every reservation of a prepared shipment to the ledger.
        Any failing line aborts the whole send and leaves it prepared.
        """
        with transaction(db):
            shipment = ShipmentService._get_shipment(db, shipment_id, lock=True)
            ShipmentService._require_status(shipment, ShipmentStatus.PREPARED, "send")
            
            contents, cartons, products = ShipmentService._load_contents(db, shipment_id)
            if not contents:
                raise ValidationError("Shipment has no contents. Add boxes before sending.")
            
            summary = ShipmentSummary(
                shipment_id=shipment.id,
                shipment_reference=shipment.shipment_reference,
                status=ShipmentStatus.SENT.value,
                total_boxes=0
            )
            
            for content in contents:
                carton = cartons[content.carton_id]
                product = products[content.product_id]
                if carton.is_archived:
                    raise InvalidStateError(
                        f"Carton {carton.carton_number} is archived", current_state=carton.status
                    )
                
                # Re-validate: stock may have moved since the boxes were added
                ledger_row = LedgerService.get_content(db, content.carton_id, content.product_id, lock=True)
                on_hand = ledger_row.boxes_current if ledger_row else 0
                if on_hand < content.boxes_sent:
                    raise InsufficientStockError(
                        carton_id=content.carton_id,
                        product_id=content.product_id,
                        requested=content.boxes_sent,
                        available=on_hand,
                        message=(
                            f"Not enough boxes in carton {carton.carton_number} for {product.product_name}. "
                            f"Available: {on_hand}, Trying to send: {content.boxes_sent}"
                        )
                    )
                
                LedgerService.apply_movement(
                    db,
                    carton_id=content.carton_id,
                    product_id=content.product_id,
                    delta=-content.boxes_sent,
                    kind=MovementKind.SENT_TO_AMAZON,
                    shipment_id=shipment.id,
                    user_id=user_id
                )
                summary.total_boxes += content.boxes_sent
                ShipmentService._track(summary, carton, product)
            
            for carton in cartons.values():
                if carton.status == CartonStatus.EMPTY.value:
                    summary.cartons_emptied.append(carton.carton_number)
            
            ShipmentService._transition(shipment, ShipmentStatus.SENT)
            shipment.updated_at = func.now()
        
        logger.info(
            f"Shipment {summary.shipment_reference} sent: {summary.total_boxes} boxes "
            f"from {len(summary.carton_list)} cartons"
        )
        return summary
    
    @staticmethod
    def recall_shipment(
        db: Session,
        shipment_id: int,
        notes: Optional[str] = None,
        user_id: Optional[int] = None
    ) -> ShipmentSummary:
        """Return every box of a sent shipment to its carton"""
        reason = (notes or "").strip()
        
        with transaction(db):
            shipment = ShipmentService._get_shipment(db, shipment_id, lock=True)
            ShipmentService._require_status(shipment, ShipmentStatus.SENT, "recall")
            
            contents, cartons, products = ShipmentService._load_contents(db, shipment_id)
            if not contents:
                raise ValidationError("Shipment has no contents to recall")
            
            summary = ShipmentSummary(
                shipment_id=shipment.id,
                shipment_reference=shipment.shipment_reference,
                status=ShipmentStatus.RECALLED.value,
                total_boxes=0
            )
            
            for content in contents:
                LedgerService.apply_movement(
                    db,
                    carton_id=content.carton_id,
                    product_id=content.product_id,
                    delta=content.boxes_sent,
                    kind=MovementKind.RECALLED,
                    shipment_id=shipment.id,
                    user_id=user_id,
                    notes=reason or None
                )
                summary.total_boxes += content.boxes_sent
                ShipmentService._track(summary, cartons[content.carton_id], products[content.product_id])
            
            stamp = datetime.now().strftime("%Y-%m-%d %H:%M")
            recall_note = f"Recalled {stamp}: {reason}" if reason else f"Recalled {stamp}"
            shipment.notes = f"{shipment.notes}\n\n{recall_note}" if shipment.notes else recall_note
            
            ShipmentService._transition(shipment, ShipmentStatus.RECALLED)
            shipment.updated_at = func.now()
        
        logger.info(f"Shipment {summary.shipment_reference} recalled: {summary.total_boxes} boxes returned")
        return summary
    
    @staticmethod
    def delete_shipment(db: Session, shipment_id: int) -> Dict:
        """Hard-delete a prepared shipment and its reservations"""
        with transaction(db):
            shipment = ShipmentService._get_shipment(db, shipment_id, lock=True)
            if shipment.status != ShipmentStatus.PREPARED.value:
                raise InvalidStateError(
                    "Can only delete prepared shipments. Sent shipments should be recalled instead.",
                    current_state=shipment.status
                )
            
            reference = shipment.shipment_reference
            removed = db.query(ShipmentContent).filter(ShipmentContent.shipment_id == shipment_id).count()
            db.delete(shipment)
        
        logger.info(f"Deleted shipment {reference} ({removed} entries)")
        return {"shipment_reference": reference, "content_entries_removed": removed}
    
    # ===================== HELPERS =====================
    
    @staticmethod
    def _load_contents(db: Session, shipment_id: int) -> Tuple[List[ShipmentContent], Dict, Dict]:
        contents = db.query(ShipmentContent).filter(
            ShipmentContent.shipment_id == shipment_id
        ).order_by(ShipmentContent.id).all()
        
        carton_ids = {c.carton_id for c in contents}
        product_ids = {c.product_id for c in contents}
        cartons = {c.id: c for c in db.query(Carton).filter(Carton.id.in_(carton_ids)).all()} if carton_ids else {}
        products = {p.id: p for p in db.query(Product).filter(Product.id.in_(product_ids)).all()} if product_ids else {}
        return contents, cartons, products
    
    @staticmethod
    def _track(summary: ShipmentSummary, carton: Carton, product: Product) -> None:
        if carton.carton_number not in summary.carton_list:
            summary.carton_list.append(carton.carton_number)
        if product.product_name not in summary.product_list:
            summary.product_list.append(product.product_name)
