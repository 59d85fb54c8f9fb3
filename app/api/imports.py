"""
Imports API - packing lists and Amazon snapshots
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.core import get_db
from app.models import AppUser
from app.schemas.stock import PackingListImport, AmazonSnapshotImport
from app.services import ImportService
from app.api.auth import get_current_user

router = APIRouter(prefix="/imports", tags=["imports"])


@router.post("/packing-list")
def import_packing_list(
    data: PackingListImport,
    source: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    stats = ImportService.import_packing_list(db, data.rows, user_id=current_user.id, source=source)
    return {"success": True, **stats}


@router.post("/amazon-snapshot")
def import_amazon_snapshot(
    data: AmazonSnapshotImport,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user)
):
    stats = ImportService.import_amazon_snapshot(db, data.snapshot_date, data.rows, user_id=current_user.id)
    return {"success": True, **stats}
