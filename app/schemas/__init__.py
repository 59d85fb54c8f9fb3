# Pydantic Schemas Package
from .product import ProductCreate, ProductUpdate, SeasonalFactorsUpdate
from .stock import ReceiptRow, PackingListImport, SnapshotRow, AmazonSnapshotImport
from .shipment import ShipmentCreate, BoxLine, AddBoxesRequest, RecallRequest
from .carton import MoveCartonsRequest
from .planned_stock import PlannedStockCreate, PlannedStockUpdate
from .user import LoginRequest, UserCreate, UserUpdate, PasswordChange

__all__ = [
    "ProductCreate", "ProductUpdate", "SeasonalFactorsUpdate",
    "ReceiptRow", "PackingListImport", "SnapshotRow", "AmazonSnapshotImport",
    "ShipmentCreate", "BoxLine", "AddBoxesRequest", "RecallRequest",
    "MoveCartonsRequest",
    "PlannedStockCreate", "PlannedStockUpdate",
    "LoginRequest", "UserCreate", "UserUpdate", "PasswordChange",
]
