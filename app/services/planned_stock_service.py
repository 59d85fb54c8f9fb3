"""
Planned Stock Service - CRUD for forecasted inbound boxes
"""
from sqlalchemy.orm import Session
from typing import List, Dict, Optional
from datetime import date
import logging

from app.core.database import transaction
from app.core.exceptions import ValidationError, NotFoundError
from app.models import PlannedStock, PlannedScope, Product
from app.schemas.planned_stock import PlannedStockCreate, PlannedStockUpdate

logger = logging.getLogger(__name__)

SCOPES = [s.value for s in PlannedScope]


class PlannedStockService:
    """Planned stock business logic"""
    
    @staticmethod
    def _validate_scope(scope: str) -> str:
        if scope not in SCOPES:
            raise ValidationError(f"Invalid scope. Must be: {', '.join(SCOPES)}")
        return scope
    
    @staticmethod
    def get_planned_stock(
        db: Session,
        product_id: Optional[int] = None,
        include_simulations: bool = False,
        include_future: bool = False,
        include_inactive: bool = False,
        today: Optional[date] = None
    ) -> List[PlannedStock]:
        """
        By default only active, committed entries whose ETA has passed
        (or is not set) are returned.
        """
        today = today or date.today()
        query = db.query(PlannedStock)
        
        if product_id is not None:
            query = query.filter(PlannedStock.product_id == product_id)
        
        if not include_simulations:
            query = query.filter(PlannedStock.scope == PlannedScope.COMMITTED.value)
        
        if not include_future:
            query = query.filter(
                (PlannedStock.eta_date == None) | (PlannedStock.eta_date <= today)
            )
        
        if not include_inactive:
            query = query.filter(PlannedStock.is_active == True)
        
        return query.order_by(PlannedStock.product_id, PlannedStock.eta_date, PlannedStock.id).all()
    
    @staticmethod
    def get_entry(db: Session, planned_id: int) -> PlannedStock:
        entry = db.query(PlannedStock).filter(PlannedStock.id == planned_id).first()
        if not entry:
            raise NotFoundError("Planned stock entry", planned_id)
        return entry
    
    @staticmethod
    def create_entry(db: Session, data: PlannedStockCreate) -> PlannedStock:
        PlannedStockService._validate_scope(data.scope)
        
        with transaction(db):
            product = db.query(Product).filter(Product.id == data.product_id).first()
            if not product:
                raise NotFoundError("Product", data.product_id)
            
            entry = PlannedStock(
                product_id=data.product_id,
                quantity_boxes=data.quantity_boxes,
                eta_date=data.eta_date,
                scope=data.scope,
                label=(data.label or "").strip() or None,
                is_active=data.is_active
            )
            db.add(entry)
        
        db.refresh(entry)
        logger.info(
            f"Planned {entry.quantity_boxes} boxes ({entry.scope}) for product {entry.product_id}, ETA {entry.eta_date}"
        )
        return entry
    
    @staticmethod
    def update_entry(db: Session, planned_id: int, data: PlannedStockUpdate) -> PlannedStock:
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")
        if changes.get("scope") is not None:
            PlannedStockService._validate_scope(changes["scope"])
        for field in ("quantity_boxes", "scope", "is_active"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be empty")
        
        with transaction(db):
            entry = PlannedStockService.get_entry(db, planned_id)
            for field, value in changes.items():
                setattr(entry, field, value)
        
        db.refresh(entry)
        return entry
    
    @staticmethod
    def delete_entry(db: Session, planned_id: int, hard: bool = False) -> None:
        """Soft delete deactivates the entry; hard delete removes the row"""
        with transaction(db):
            entry = PlannedStockService.get_entry(db, planned_id)
            if hard:
                db.delete(entry)
            else:
                entry.is_active = False
        
        logger.info(f"{'Deleted' if hard else 'Deactivated'} planned stock entry {planned_id}")
    
    @staticmethod
    def serialize(entry: PlannedStock) -> Dict:
        return {
            "id": entry.id,
            "product_id": entry.product_id,
            "quantity_boxes": entry.quantity_boxes,
            "eta_date": entry.eta_date.isoformat() if entry.eta_date else None,
            "scope": entry.scope,
            "label": entry.label,
            "is_active": entry.is_active,
            "created_at": entry.created_at.isoformat() if entry.created_at else None,
            "updated_at": entry.updated_at.isoformat() if entry.updated_at else None,
        }
