"""
Typed errors for the inventory core.

Every error carries a machine-readable ``code`` and the HTTP status it maps
to, so the API layer can render it without parsing messages:

    WarehouseError (base)
    +-- ValidationError          400
    +-- InvalidStateError        400
    +-- InsufficientStockError   400
    +-- DuplicateReferenceError  400
    +-- AuthenticationError      401
    +-- PermissionDeniedError    403
    +-- NotFoundError            404
    +-- TooManyAttemptsError     429
    +-- PersistenceFault         500
"""
from typing import Optional


class WarehouseError(Exception):
    """Base class for all domain errors."""

    code: str = "WAREHOUSE_ERROR"
    status_code: int = 400

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        # Extra keys merged into the error response body
        self.details = details or {}
        super().__init__(message)


class ValidationError(WarehouseError):
    """Malformed or missing input."""

    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidStateError(WarehouseError):
    """Operation attempted against a shipment or carton in the wrong lifecycle state."""

    code = "INVALID_STATE"
    status_code = 400

    def __init__(self, message: str, current_state: Optional[str] = None):
        self.current_state = current_state
        super().__init__(message)


class InsufficientStockError(WarehouseError):
    """Requested quantity exceeds live availability."""

    code = "INSUFFICIENT_STOCK"
    status_code = 400

    def __init__(
        self,
        carton_id: int,
        product_id: int,
        requested: int,
        available: int,
        reserved: int = 0,
        message: Optional[str] = None,
    ):
        self.carton_id = carton_id
        self.product_id = product_id
        self.requested = requested
        self.available = available
        self.reserved = reserved
        if message is None:
            if reserved > 0:
                message = (
                    f"Only {available} boxes available in carton {carton_id} for product "
                    f"{product_id} ({reserved} reserved in other shipments), cannot send {requested}"
                )
            else:
                message = (
                    f"Only {available} boxes available in carton {carton_id} for product "
                    f"{product_id}, cannot send {requested}"
                )
        super().__init__(message)


class DuplicateReferenceError(WarehouseError):
    """Shipment reference already in use."""

    code = "DUPLICATE_REFERENCE"
    status_code = 400

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(
            f"Shipment reference '{reference}' already exists. Please use a unique reference."
        )


class AuthenticationError(WarehouseError):
    code = "NOT_AUTHENTICATED"
    status_code = 401


class PermissionDeniedError(WarehouseError):
    code = "PERMISSION_DENIED"
    status_code = 403


class NotFoundError(WarehouseError):
    """Referenced id does not exist."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        if entity_id is None:
            super().__init__(f"{entity} not found")
        else:
            super().__init__(f"{entity} {entity_id} not found")


class TooManyAttemptsError(WarehouseError):
    code = "TOO_MANY_ATTEMPTS"
    status_code = 429


class PersistenceFault(WarehouseError):
    """Underlying transaction or connection failure. Detail stays server-side."""

    code = "PERSISTENCE_FAULT"
    status_code = 500

    def __init__(self, message: str = "Server error occurred"):
        super().__init__(message)
