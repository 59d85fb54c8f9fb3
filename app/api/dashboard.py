"""
Dashboard API - coverage forecast and its configuration
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from app.core import get_db, get_settings, Settings
from app.models import AppUser
from app.services import ConfigService, ForecastService, CoverageToggles
from app.api.auth import get_current_user

router = APIRouter(tags=["dashboard"])


@router.get("/config")
def get_config(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: AppUser = Depends(get_current_user)
):
    config = ConfigService.get_coverage_config(db, settings)
    return {"success": True, **config.to_dict()}


@router.get("/dashboard/coverage")
def coverage(
    target_date: Optional[date] = Query(None),
    include_amazon: bool = Query(True),
    include_additional: bool = Query(True),
    include_simulations: bool = Query(False),
    include_future: bool = Query(False),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: AppUser = Depends(get_current_user)
):
    config = ConfigService.get_coverage_config(db, settings)
    toggles = CoverageToggles(
        include_amazon=include_amazon,
        include_additional=include_additional,
        include_simulations=include_simulations,
        include_future=include_future
    )
    result = ForecastService.get_coverage_dashboard(db, config, target_date=target_date, toggles=toggles)
    return {"success": True, **result}
