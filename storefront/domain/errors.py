# storefront/domain/errors.py
"""
Error taxonomy of the storefront core.

Every rejection carries a stable `category` (safe to branch on in clients)
and a human readable message. Routers turn them into HTTP responses;
anything that is not a StorefrontError (e.g. the store being down) is left
to propagate as an internal failure.
"""


class StorefrontError(Exception):
    category = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(StorefrontError, ValueError):
    category = "validation_error"
    status_code = 400


class NotFound(StorefrontError, LookupError):
    category = "not_found"
    status_code = 404


class AccessDenied(StorefrontError, PermissionError):
    category = "forbidden"
    status_code = 403


class Conflict(StorefrontError, ValueError):
    category = "conflict"
    status_code = 409


class InsufficientStock(Conflict):
    category = "insufficient_stock"

    def __init__(self, product_id: int, requested: int, available: int | None = None, name: str | None = None):
        label = f"{name} ({product_id})" if name else f"{product_id}"
        msg = f"Insufficient stock for product {label}: requested {requested}"
        if available is not None:
            msg += f", available {available}"
        super().__init__(msg)
        self.product_id = product_id
        self.requested = requested
        self.available = available


class StockLimitExceeded(Conflict):
    category = "stock_limit_exceeded"


class DuplicatePayment(Conflict):
    category = "duplicate_payment"

    def __init__(self, order_id: int):
        super().__init__(f"Payment already exists for order {order_id}")
        self.order_id = order_id


class InvalidTransition(Conflict):
    category = "invalid_transition"

    def __init__(self, kind: str, current: str, target: str):
        super().__init__(f"Cannot move {kind} from '{current}' to '{target}'")
        self.current = current
        self.target = target


class ConcurrentModification(Conflict):
    category = "concurrent_modification"
