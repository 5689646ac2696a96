"""
Typed errors raised by the inventory services.

Adapters catch these by type and translate them: the HTTP layer maps them
to status codes, the CLI to an error line and a non-zero exit code. Every
error carries a machine-readable ``code`` and the structured ``context``
that produced it, so callers never have to parse messages.

    InventoryError
    +-- InvalidArgumentError
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- LocationNotFoundError
    |   +-- StockNotFoundError
    +-- AlreadyExistsError
    +-- FailedPreconditionError
    |   +-- InsufficientStockError
    +-- InternalError
        +-- DeadlineExceededError
"""

from typing import Any, Dict, Optional


class InventoryError(Exception):
    """Base class for all service errors."""

    code = "INVENTORY_ERROR"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "context": self.context}


class InvalidArgumentError(InventoryError):
    code = "INVALID_ARGUMENT"


class NotFoundError(InventoryError):
    code = "NOT_FOUND"


class ProductNotFoundError(NotFoundError):
    def __init__(self, message: Optional[str] = None, **context: Any):
        if message is None:
            if "product_id" in context:
                message = f"product with ID {context['product_id']} does not exist"
            else:
                message = f"product with SKU {context.get('sku')} not found"
        super().__init__(message, **context)


class LocationNotFoundError(NotFoundError):
    def __init__(self, message: Optional[str] = None, **context: Any):
        if message is None:
            if "location_id" in context:
                message = f"location with ID {context['location_id']} does not exist"
            else:
                message = f"location with name {context.get('name')} not found"
        super().__init__(message, **context)


class StockNotFoundError(NotFoundError):
    def __init__(self, product_id: int, location_id: int):
        super().__init__(
            f"no stock recorded for product {product_id} at location {location_id}",
            product_id=product_id,
            location_id=location_id,
        )


class AlreadyExistsError(InventoryError):
    code = "ALREADY_EXISTS"


class FailedPreconditionError(InventoryError):
    code = "FAILED_PRECONDITION"


class InsufficientStockError(FailedPreconditionError):
    def __init__(self, product_id: int, location_id: int, available: int, requested: int):
        super().__init__(
            f"insufficient stock: only {available} available, requested {requested}",
            product_id=product_id,
            location_id=location_id,
            available=available,
            requested=requested,
        )
        self.available = available
        self.requested = requested


class InternalError(InventoryError):
    code = "INTERNAL"


class DeadlineExceededError(InternalError):
    code = "DEADLINE_EXCEEDED"
