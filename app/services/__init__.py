# Services Package
from .ledger_service import LedgerService
from .reservation_service import ReservationService
from .shipment_service import ShipmentService, AddBoxesResult, LineOutcome, ShipmentSummary, NoBoxesAddedError
from .carton_service import CartonService, MoveResult
from .forecast_service import ForecastService, CoverageConfig, CoverageToggles
from .product_service import ProductService
from .planned_stock_service import PlannedStockService
from .import_service import ImportService
from .config_service import ConfigService
from .user_service import UserService

__all__ = [
    "LedgerService",
    "ReservationService",
    "ShipmentService", "AddBoxesResult", "LineOutcome", "ShipmentSummary", "NoBoxesAddedError",
    "CartonService", "MoveResult",
    "ForecastService", "CoverageConfig", "CoverageToggles",
    "ProductService",
    "PlannedStockService",
    "ImportService",
    "ConfigService",
    "UserService",
]
