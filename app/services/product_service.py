"""
Product Service - Business Logic for Products
"""
from sqlalchemy.orm import Session
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from typing import List, Dict, Optional
import logging

from app.core.database import transaction
from app.core.exceptions import ValidationError, InvalidStateError, NotFoundError
from app.models import (
    Product, Carton, CartonContent, CartonLocation, CartonStatus,
    ShipmentContent, AmazonSnapshot, MONTH_KEYS
)
from app.schemas.product import ProductCreate, ProductUpdate
from .forecast_service import ProductStock

logger = logging.getLogger(__name__)


class ProductService:
    """Product business logic"""
    
    @staticmethod
    def get_location_pairs(db: Session) -> Dict[int, Dict[str, int]]:
        """product_id -> {location: pairs} over cartons that are not archived"""
        rows = db.query(
            CartonContent.product_id,
            Carton.location,
            func.sum(CartonContent.boxes_current * Product.pairs_per_box).label("pairs")
        ).join(
            Carton, CartonContent.carton_id == Carton.id
        ).join(
            Product, CartonContent.product_id == Product.id
        ).filter(
            Carton.status != CartonStatus.ARCHIVED.value
        ).group_by(CartonContent.product_id, Carton.location).all()
        
        result: Dict[int, Dict[str, int]] = {}
        for product_id, location, pairs in rows:
            result.setdefault(product_id, {})[location] = int(pairs or 0)
        return result
    
    @staticmethod
    def get_latest_snapshot_date(db: Session):
        return db.query(func.max(AmazonSnapshot.snapshot_date)).scalar()
    
    @staticmethod
    def get_amazon_pairs(db: Session) -> Dict[int, int]:
        """product_id -> pairs at Amazon according to the most recent snapshot"""
        latest = ProductService.get_latest_snapshot_date(db)
        if latest is None:
            return {}
        
        rows = db.query(
            Product.id,
            func.sum(AmazonSnapshot.available_boxes * Product.pairs_per_box).label("pairs")
        ).join(
            AmazonSnapshot, AmazonSnapshot.fnsku == Product.fnsku
        ).filter(
            AmazonSnapshot.snapshot_date == latest
        ).group_by(Product.id).all()
        
        return {product_id: int(pairs or 0) for product_id, pairs in rows}
    
    @staticmethod
    def get_products(
        db: Session,
        search: Optional[str] = None,
        active_only: bool = False
    ) -> List[Dict]:
        """Products with seasonal factors and pairs per location"""
        query = db.query(Product)
        
        if active_only:
            query = query.filter(Product.is_active == True)
        
        if search:
            search_term = f"%{search}%"
            query = query.filter(
                or_(
                    Product.product_name.ilike(search_term),
                    Product.fnsku.ilike(search_term),
                    Product.artikel.ilike(search_term)
                )
            )
        
        products = query.order_by(Product.product_name, Product.artikel).all()
        location_pairs = ProductService.get_location_pairs(db)
        amazon_pairs = ProductService.get_amazon_pairs(db)
        
        results = []
        for p in products:
            pairs = location_pairs.get(p.id, {})
            incoming = pairs.get(CartonLocation.INCOMING.value, 0)
            wml = pairs.get(CartonLocation.WML.value, 0)
            gmr = pairs.get(CartonLocation.GMR.value, 0)
            amz = amazon_pairs.get(p.id, 0)
            results.append({
                **ProductService.serialize(p),
                "incoming_pairs": incoming,
                "wml_pairs": wml,
                "gmr_pairs": gmr,
                "amz_pairs": amz,
                "total_pairs_internal": incoming + wml + gmr,
                "total_pairs_all": incoming + wml + gmr + amz,
            })
        return results
    
    @staticmethod
    def get_stock_snapshots(db: Session) -> List[ProductStock]:
        """Forecast inputs for every active product"""
        location_pairs = ProductService.get_location_pairs(db)
        amazon_pairs = ProductService.get_amazon_pairs(db)
        
        products = db.query(Product).filter(Product.is_active == True).order_by(Product.product_name).all()
        
        stocks = []
        for p in products:
            pairs = location_pairs.get(p.id, {})
            stocks.append(ProductStock(
                product_id=p.id,
                name=p.product_name,
                pairs_per_box=p.pairs_per_box,
                average_weekly_sales=p.average_weekly_sales,
                seasonal_factors=p.seasonal_factors,
                incoming_pairs=pairs.get(CartonLocation.INCOMING.value, 0),
                wml_pairs=pairs.get(CartonLocation.WML.value, 0),
                gmr_pairs=pairs.get(CartonLocation.GMR.value, 0),
                amz_pairs=amazon_pairs.get(p.id, 0)
            ))
        return stocks
    
    @staticmethod
    def get_product_by_id(db: Session, product_id: int) -> Product:
        product = db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError("Product", product_id)
        return product
    
    @staticmethod
    def get_product_by_fnsku(db: Session, fnsku: str) -> Optional[Product]:
        return db.query(Product).filter(Product.fnsku == fnsku).first()
    
    @staticmethod
    def create_product(db: Session, product_data: ProductCreate) -> Product:
        """Create new product"""
        fnsku = product_data.fnsku.strip()
        
        with transaction(db):
            if ProductService.get_product_by_fnsku(db, fnsku):
                raise ValidationError(f"Product with FNSKU {fnsku} already exists")
            
            product = Product(
                fnsku=fnsku,
                artikel=product_data.artikel,
                asin=product_data.asin,
                sku=product_data.sku,
                ean=product_data.ean,
                product_name=product_data.product_name.strip(),
                color=product_data.color,
                pairs_per_box=product_data.pairs_per_box,
                average_weekly_sales=product_data.average_weekly_sales
            )
            db.add(product)
            try:
                db.flush()
            except IntegrityError:
                raise ValidationError(f"Product with FNSKU {fnsku} already exists")
        
        db.refresh(product)
        logger.info(f"Created product {product.fnsku} ({product.product_name})")
        return product
    
    @staticmethod
    def update_product(db: Session, product_id: int, product_data: ProductUpdate) -> Product:
        """Update product"""
        with transaction(db):
            product = ProductService.get_product_by_id(db, product_id)
            for field, value in product_data.model_dump(exclude_unset=True).items():
                if field in ("product_name", "pairs_per_box", "average_weekly_sales", "is_active") and value is None:
                    raise ValidationError(f"{field} cannot be empty")
                setattr(product, field, value)
        
        db.refresh(product)
        return product
    
    @staticmethod
    def update_factors(db: Session, product_id: int, factors: Dict[str, float]) -> Product:
        """Replace the twelve monthly factors. Months not given reset to 1.0."""
        unknown = [key for key in factors if key not in MONTH_KEYS]
        if unknown:
            raise ValidationError(f"Unknown month keys: {', '.join(sorted(unknown))}")
        
        with transaction(db):
            product = ProductService.get_product_by_id(db, product_id)
            product.set_seasonal_factors(factors)
        
        db.refresh(product)
        logger.info(f"Updated seasonal factors for product {product.fnsku}")
        return product
    
    @staticmethod
    def delete_product(db: Session, product_id: int) -> None:
        """Delete a product that no carton or shipment references"""
        with transaction(db):
            product = ProductService.get_product_by_id(db, product_id)
            
            in_cartons = db.query(CartonContent.id).filter(CartonContent.product_id == product_id).count()
            if in_cartons:
                raise InvalidStateError(
                    f"Cannot delete product {product.fnsku}: it is stored in {in_cartons} carton(s)"
                )
            in_shipments = db.query(ShipmentContent.id).filter(ShipmentContent.product_id == product_id).count()
            if in_shipments:
                raise InvalidStateError(
                    f"Cannot delete product {product.fnsku}: it is part of {in_shipments} shipment line(s)"
                )
            
            fnsku = product.fnsku
            db.delete(product)
        
        logger.info(f"Deleted product {fnsku}")
    
    @staticmethod
    def serialize(product: Product) -> Dict:
        return {
            "product_id": product.id,
            "fnsku": product.fnsku,
            "artikel": product.artikel,
            "asin": product.asin,
            "sku": product.sku,
            "ean": product.ean,
            "product_name": product.product_name,
            "color": product.color,
            "pairs_per_box": product.pairs_per_box,
            "average_weekly_sales": product.average_weekly_sales,
            "is_active": product.is_active,
            "seasonal_factors": product.seasonal_factors,
        }
