"""Repositories mediating all reads and writes of the order tables."""
from .customers import CustomerRepository
from .orders import OrderRepository
from .products import ProductRepository
from .reports import ReportRepository

__all__ = [
    "CustomerRepository",
    "OrderRepository",
    "ProductRepository",
    "ReportRepository",
]
