"""FastAPI application and routes."""
from .main import app
from .schemas import (
    OrderLineResponse,
    OrderResponse,
    PlaceOrderRequest,
    TotalSpentResponse,
)

__all__ = [
    "app",
    "OrderLineResponse",
    "OrderResponse",
    "PlaceOrderRequest",
    "TotalSpentResponse",
]
