"""Core order placement logic."""
from .order_service import OrderPlacementService
from .queries import TotalSpentQuery
from .unit_of_work import UnitOfWork

__all__ = [
    "OrderPlacementService",
    "TotalSpentQuery",
    "UnitOfWork",
]
