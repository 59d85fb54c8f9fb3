"""
Ledger Service - authoritative box counts per (carton, product)

Every change to carton_contents goes through this module so that the
movement log and carton status stay in step with the counters.
"""
from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Optional
import logging

from app.core.exceptions import InsufficientStockError, InvalidStateError, NotFoundError
from app.models import Carton, CartonContent, CartonStatus, BoxMovementLog, MovementKind

logger = logging.getLogger(__name__)


class LedgerService:
    """Inventory ledger business logic"""
    
    @staticmethod
    def get_content(
        db: Session,
        carton_id: int,
        product_id: int,
        lock: bool = False
    ) -> Optional[CartonContent]:
        """Get the ledger row, optionally locking it for the rest of the transaction"""
        query = db.query(CartonContent).filter(
            CartonContent.carton_id == carton_id,
            CartonContent.product_id == product_id
        )
        if lock:
            query = query.with_for_update()
        return query.first()
    
    @staticmethod
    def get_available(db: Session, carton_id: int, product_id: int) -> int:
        """Live boxes on hand for a (carton, product) pair"""
        content = LedgerService.get_content(db, carton_id, product_id)
        if not content:
            raise NotFoundError("Carton content", f"{carton_id}/{product_id}")
        return content.boxes_current
    
    @staticmethod
    def apply_movement(
        db: Session,
        carton_id: int,
        product_id: int,
        delta: int,
        kind: MovementKind,
        shipment_id: Optional[int] = None,
        user_id: Optional[int] = None,
        notes: Optional[str] = None
    ) -> CartonContent:
        """
        Move boxes between on-hand and sent-to-Amazon.
        
        boxes_current changes by ``delta`` and boxes_sent_to_amazon by
        ``-delta``, so their sum is unchanged. Appends one movement log row
        and recomputes the carton status. Does not commit.
        """
        content = LedgerService.get_content(db, carton_id, product_id, lock=True)
        if not content:
            raise NotFoundError("Carton content", f"{carton_id}/{product_id}")
        
        new_current = content.boxes_current + delta
        if new_current < 0:
            raise InsufficientStockError(
                carton_id=carton_id,
                product_id=product_id,
                requested=-delta,
                available=content.boxes_current
            )
        
        new_sent = content.boxes_sent_to_amazon - delta
        if new_sent < 0:
            raise InvalidStateError(
                f"Cannot return {delta} boxes to carton {carton_id}: only "
                f"{content.boxes_sent_to_amazon} were sent to Amazon"
            )
        
        content.boxes_current = new_current
        content.boxes_sent_to_amazon = new_sent
        
        db.add(BoxMovementLog(
            carton_id=carton_id,
            product_id=product_id,
            movement_type=MovementKind(kind).value,
            boxes=delta,
            shipment_id=shipment_id,
            notes=notes,
            created_by=user_id
        ))
        db.flush()
        
        LedgerService.refresh_carton_status(db, carton_id)
        return content
    
    @staticmethod
    def receive(
        db: Session,
        carton: Carton,
        product_id: int,
        boxes: int,
        user_id: Optional[int] = None,
        notes: Optional[str] = None
    ) -> CartonContent:
        """
        Initial receipt: adds new baseline quantity.
        The only path that raises boxes_initial.
        """
        if carton.is_archived:
            raise InvalidStateError(
                f"Carton {carton.carton_number} is archived", current_state=carton.status
            )
        
        content = LedgerService.get_content(db, carton.id, product_id, lock=True)
        if content is None:
            content = CartonContent(
                carton_id=carton.id,
                product_id=product_id,
                boxes_initial=boxes,
                boxes_current=boxes,
                boxes_sent_to_amazon=0
            )
            db.add(content)
        else:
            content.boxes_initial += boxes
            content.boxes_current += boxes
        
        db.add(BoxMovementLog(
            carton_id=carton.id,
            product_id=product_id,
            movement_type=MovementKind.RECEIVED.value,
            boxes=boxes,
            notes=notes,
            created_by=user_id
        ))
        db.flush()
        
        LedgerService.refresh_carton_status(db, carton.id)
        return content
    
    @staticmethod
    def refresh_carton_status(db: Session, carton_id: int) -> str:
        """
        empty when no boxes remain on hand, in stock otherwise.
        Archived cartons are left untouched.
        """
        carton = db.query(Carton).filter(Carton.id == carton_id).first()
        if not carton:
            raise NotFoundError("Carton", carton_id)
        if carton.is_archived:
            return carton.status
        
        total = db.query(func.coalesce(func.sum(CartonContent.boxes_current), 0)).filter(
            CartonContent.carton_id == carton_id
        ).scalar()
        
        new_status = CartonStatus.EMPTY.value if int(total) == 0 else CartonStatus.IN_STOCK.value
        if carton.status != new_status:
            logger.info(f"Carton {carton.carton_number}: {carton.status} -> {new_status}")
            carton.status = new_status
            db.flush()
        return carton.status
    
    @staticmethod
    def get_movements(
        db: Session,
        carton_id: Optional[int] = None,
        shipment_id: Optional[int] = None,
        limit: int = 200
    ):
        """Recent movements, newest first"""
        query = db.query(BoxMovementLog)
        
        if carton_id is not None:
            query = query.filter(BoxMovementLog.carton_id == carton_id)
        
        if shipment_id is not None:
            query = query.filter(BoxMovementLog.shipment_id == shipment_id)
        
        return query.order_by(BoxMovementLog.created_at.desc(), BoxMovementLog.id.desc()).limit(limit).all()
