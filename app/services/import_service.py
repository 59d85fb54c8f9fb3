"""
Import Service - Receiving packing lists and Amazon inventory snapshots

Rows arrive already parsed; file parsing lives with the client.
"""
from sqlalchemy.orm import Session
from typing import List, Dict, Optional
from datetime import date
import logging

from app.core.database import transaction
from app.core.exceptions import ValidationError
from app.models import Product, Carton, CartonLocation, CartonStatus, AmazonSnapshot
from app.schemas.stock import ReceiptRow, SnapshotRow
from .ledger_service import LedgerService

logger = logging.getLogger(__name__)


class ImportService:
    """Receipt and snapshot imports"""
    
    @staticmethod
    def import_packing_list(
        db: Session,
        rows: List[ReceiptRow],
        user_id: Optional[int] = None,
        source: Optional[str] = None
    ) -> Dict:
        """
        Receive a packing list into the ledger, all rows or none.
        
        Unknown FNSKUs become new products (product_name required then),
        unknown carton numbers become new cartons at Incoming.
        """
        if not rows:
            raise ValidationError("Packing list has no rows")
        
        stats = {
            "rows": len(rows),
            "boxes_received": 0,
            "cartons_created": [],
            "products_created": [],
            "cartons_updated": [],
        }
        note = f"Packing list import: {source}" if source else "Packing list import"
        
        with transaction(db):
            cartons: Dict[str, Carton] = {}
            products: Dict[str, Product] = {}
            
            for index, row in enumerate(rows):
                fnsku = row.fnsku.strip()
                carton_number = row.carton_number.strip()
                
                product = products.get(fnsku) or db.query(Product).filter(Product.fnsku == fnsku).first()
                if product is None:
                    if not row.product_name:
                        raise ValidationError(
                            f"Row {index}: unknown FNSKU {fnsku} and no product_name to create it"
                        )
                    product = Product(
                        fnsku=fnsku,
                        product_name=row.product_name.strip(),
                        artikel=row.artikel,
                        pairs_per_box=row.pairs_per_box or 1
                    )
                    db.add(product)
                    db.flush()
                    stats["products_created"].append(fnsku)
                products[fnsku] = product
                
                carton = cartons.get(carton_number) or db.query(Carton).filter(
                    Carton.carton_number == carton_number
                ).first()
                if carton is None:
                    carton = Carton(
                        carton_number=carton_number,
                        location=CartonLocation.INCOMING.value,
                        status=CartonStatus.IN_STOCK.value
                    )
                    db.add(carton)
                    db.flush()
                    stats["cartons_created"].append(carton_number)
                elif carton_number not in cartons and carton_number not in stats["cartons_updated"]:
                    stats["cartons_updated"].append(carton_number)
                cartons[carton_number] = carton
                
                LedgerService.receive(db, carton, product.id, row.boxes, user_id=user_id, notes=note)
                stats["boxes_received"] += row.boxes
        
        logger.info(
            f"Imported packing list: {stats['boxes_received']} boxes in {len(cartons)} cartons "
            f"({len(stats['cartons_created'])} new cartons, {len(stats['products_created'])} new products)"
        )
        return stats
    
    @staticmethod
    def import_amazon_snapshot(
        db: Session,
        snapshot_date: date,
        rows: List[SnapshotRow],
        user_id: Optional[int] = None
    ) -> Dict:
        """Replace every snapshot row for ``snapshot_date``. Duplicate FNSKUs are summed."""
        if not rows:
            raise ValidationError("Snapshot has no rows")
        
        totals: Dict[str, int] = {}
        for row in rows:
            fnsku = row.fnsku.strip()
            totals[fnsku] = totals.get(fnsku, 0) + row.available_boxes
        
        with transaction(db):
            replaced = db.query(AmazonSnapshot).filter(
                AmazonSnapshot.snapshot_date == snapshot_date
            ).delete(synchronize_session=False)
            
            for fnsku, boxes in totals.items():
                db.add(AmazonSnapshot(
                    snapshot_date=snapshot_date,
                    fnsku=fnsku,
                    available_boxes=boxes,
                    uploaded_by=user_id
                ))
            
            known = {
                f for (f,) in db.query(Product.fnsku).filter(Product.fnsku.in_(list(totals))).all()
            }
        
        unknown = sorted(set(totals) - known)
        if unknown:
            logger.warning(f"Amazon snapshot {snapshot_date}: {len(unknown)} FNSKUs match no product")
        logger.info(f"Imported Amazon snapshot {snapshot_date}: {len(totals)} FNSKUs, replaced {replaced} rows")
        
        return {
            "snapshot_date": snapshot_date.isoformat(),
            "rows_imported": len(totals),
            "rows_replaced": replaced,
            "total_boxes": sum(totals.values()),
            "unknown_fnskus": unknown,
        }
