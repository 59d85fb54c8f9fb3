from .base import TimestampMixin, IdMixin
from .master import AppUser, UserRoleCode, SystemConfig
from .product import Product, MONTH_KEYS
from .carton import Carton, CartonContent, CartonLocation, CartonStatus
from .shipment import AmazonShipment, ShipmentContent, ShipmentStatus
from .stock import BoxMovementLog, MovementKind
from .planned_stock import PlannedStock, PlannedScope
from .snapshot import AmazonSnapshot
from .audit import LoginAttempt

__all__ = [
    # Base
    "TimestampMixin", "IdMixin",
    # Master
    "AppUser", "UserRoleCode", "SystemConfig",
    # Product
    "Product", "MONTH_KEYS",
    # Carton
    "Carton", "CartonContent", "CartonLocation", "CartonStatus",
    # Shipment
    "AmazonShipment", "ShipmentContent", "ShipmentStatus",
    # Ledger
    "BoxMovementLog", "MovementKind",
    # Planning
    "PlannedStock", "PlannedScope",
    # Amazon
    "AmazonSnapshot",
    # Audit
    "LoginAttempt",
]
