"""
Products API
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.core import get_db
from app.models import AppUser
from app.schemas.product import ProductCreate, ProductUpdate, SeasonalFactorsUpdate
from app.services import ProductService
from app.api.auth import get_current_user, require_admin

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
def list_products(
    search: Optional[str] = Query(None),
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    products = ProductService.get_products(db, search, active_only)
    snapshot_date = ProductService.get_latest_snapshot_date(db)
    return {
        "success": True,
        "products": products,
        "count": len(products),
        "amazon_snapshot_date": snapshot_date.isoformat() if snapshot_date else None
    }


@router.get("/{product_id}")
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    product = ProductService.get_product_by_id(db, product_id)
    return {"success": True, "product": ProductService.serialize(product)}


@router.post("")
def create_product(
    data: ProductCreate,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    product = ProductService.create_product(db, data)
    return {"success": True, "product": ProductService.serialize(product)}


@router.put("/{product_id}")
def update_product(
    product_id: int,
    data: ProductUpdate,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    product = ProductService.update_product(db, product_id, data)
    return {"success": True, "product": ProductService.serialize(product)}


@router.put("/{product_id}/factors")
def update_factors(
    product_id: int,
    data: SeasonalFactorsUpdate,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    product = ProductService.update_factors(db, product_id, data.factors)
    return {"success": True, "product": ProductService.serialize(product)}


@router.delete("/{product_id}")
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    admin: AppUser = Depends(require_admin)
):
    ProductService.delete_product(db, product_id)
    return {"success": True, "message": "Product deleted"}
