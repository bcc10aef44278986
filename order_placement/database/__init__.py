"""Database package for the order system."""
from .connection import get_db, get_session_factory, init_db
from .models import (
    Base,
    Customer,
    Order,
    OrderLine,
    Product,
)

__all__ = [
    "Base",
    "Customer",
    "Product",
    "Order",
    "OrderLine",
    "get_db",
    "get_session_factory",
    "init_db",
]
