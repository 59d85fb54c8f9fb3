"""
WarehouseWrangler - Warehouse Inventory & Amazon FBA Shipment Tracking
FastAPI Application Entry Point
"""
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError
from contextlib import asynccontextmanager
import logging

from app.core import settings, engine, Base, SessionLocal
from app.core.exceptions import WarehouseError, PersistenceFault
from app.core.logging_setup import setup_logging
from app.api.router import api_router
from app.services import UserService

logger = logging.getLogger(__name__)

# Lifespan for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings)
    
    # Startup: Create tables if not exist
    Base.metadata.create_all(bind=engine)
    
    if settings.INITIAL_ADMIN_PASSWORD:
        db = SessionLocal()
        try:
            UserService.seed_admin(db, settings)
        finally:
            db.close()
    
    logger.info(f"{settings.APP_NAME} starting on port {settings.APP_PORT}")
    yield
    logger.info(f"{settings.APP_NAME} shutting down")


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


def register_exception_handlers(app: FastAPI) -> None:
    
    @app.exception_handler(WarehouseError)
    async def warehouse_error_handler(request: Request, exc: WarehouseError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.message}")
        return error_response(exc.status_code, exc.message, code=exc.code, **exc.details)
    
    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))
    
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", []) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
        return error_response(400, message, code="VALIDATION_ERROR")
    
    @app.exception_handler(SQLAlchemyError)
    async def persistence_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception(f"Database error on {request.method} {request.url.path}")
        fault = PersistenceFault()
        return error_response(fault.status_code, fault.message, code=fault.code)
    
    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error_response(500, "Server error occurred")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Warehouse Inventory & Amazon FBA Shipment Tracking",
        version="1.0.0",
        lifespan=lifespan
    )
    
    register_exception_handlers(app)
    
    # Include routers
    app.include_router(api_router, prefix="/api")
    
    # Health check
    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "app": settings.APP_NAME}
    
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.APP_PORT,
        reload=settings.DEBUG
    )
