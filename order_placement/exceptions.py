"""
Exception classes for order placement.

Every failure a caller can see is one of these types. Each carries:
- an error code for client handling
- the HTTP status the API answers with
- whether re-running the same call unchanged may succeed
"""

from typing import Any, Dict, Optional


class OrderPlacementError(Exception):
    """Base exception for order placement errors."""

    error_code = "order_placement_error"
    http_status = 500
    retryable = False

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message)
        self.message = message
        self.metadata = kwargs

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for API responses"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "type": self.__class__.__name__,
            }
        }


class NotFoundError(OrderPlacementError):
    """A referenced entity does not exist. Caller error, never retried."""

    error_code = "not_found"
    http_status = 404


class CustomerNotFoundError(NotFoundError):
    """Customer doesn't exist in system"""

    error_code = "customer_not_found"

    def __init__(self, customer_id: int, **kwargs: Any):
        super().__init__(f"Customer not found: {customer_id}", customer_id=customer_id, **kwargs)
        self.customer_id = customer_id


class OrderNotFoundError(NotFoundError):
    """Order doesn't exist in system"""

    error_code = "order_not_found"

    def __init__(self, order_id: int, **kwargs: Any):
        super().__init__(f"Order not found: {order_id}", order_id=order_id, **kwargs)
        self.order_id = order_id


class InvalidArgumentError(OrderPlacementError):
    """Malformed basket or unknown product. Caller error, never retried."""

    error_code = "invalid_argument"
    http_status = 422


class InsufficientStockError(OrderPlacementError):
    """
    Requested quantity exceeds the product's stock.

    The caller may adjust the basket and try again.
    """

    error_code = "insufficient_stock"
    http_status = 409

    def __init__(
        self,
        product_id: int,
        requested: Optional[int] = None,
        available: Optional[int] = None,
        **kwargs: Any,
    ):
        message = f"Insufficient stock for product {product_id}"
        if requested is not None and available is not None:
            message += f": requested {requested}, available {available}"
        super().__init__(
            message,
            product_id=product_id,
            requested=requested,
            available=available,
            **kwargs,
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class RetryableError(OrderPlacementError):
    """
    Transient storage conflict (serialization failure, deadlock, lock timeout).

    Safe to re-run the whole call unchanged.
    """

    error_code = "retryable_conflict"
    http_status = 503
    retryable = True

    def __init__(self, message: str, original_error: Optional[Exception] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.original_error = original_error


class StorageUnavailableError(OrderPlacementError):
    """Storage failed for a non-transient reason. Surfaced as-is."""

    error_code = "storage_unavailable"
    http_status = 503

    def __init__(self, message: str, original_error: Optional[Exception] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.original_error = original_error


# Alias for the taxonomy name used in API docs
FatalError = StorageUnavailableError
