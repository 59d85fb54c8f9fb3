"""
API Router - JSON Endpoints
"""
from fastapi import APIRouter
from datetime import datetime

from app.api import auth, users, products, cartons, shipments, planned_stock, imports, dashboard

api_router = APIRouter(tags=["API"])

# Include sub-routers
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(products.router)
api_router.include_router(cartons.router)
api_router.include_router(shipments.router)
api_router.include_router(planned_stock.router)
api_router.include_router(imports.router)
api_router.include_router(dashboard.router)

# ===================== HEALTH & STATUS =====================

@api_router.get("/status")
async def api_status():
    return {"success": True, "status": "ok", "version": "1.0.0", "timestamp": datetime.now().isoformat()}
