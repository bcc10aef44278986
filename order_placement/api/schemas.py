"""
Pydantic schemas for API request/response models.

Money is serialized as a string with two decimal places, never as a float.
"""
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, Field, PlainSerializer, StrictInt

from order_placement.domain import MAX_ID

Money = Annotated[Decimal, PlainSerializer(lambda v: f"{v:.2f}", return_type=str)]


class BasketItem(BaseModel):
    """
    One requested product.

    Fields are strict: JSON booleans, strings and floats are rejected rather
    than coerced. Positivity of quantity is checked by the service.
    """

    product_id: StrictInt = Field(..., ge=1, le=MAX_ID, description="Product identifier")
    quantity: StrictInt = Field(..., description="Units requested (positive)")


class PlaceOrderRequest(BaseModel):
    """Request schema for placing an order."""

    customer_id: StrictInt = Field(..., ge=1, le=MAX_ID, description="Ordering customer")
    items: List[BasketItem] = Field(..., description="Basket entries, processed in order")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": 2,
                    "items": [
                        {"product_id": 1, "quantity": 1},
                        {"product_id": 3, "quantity": 2},
                    ],
                }
            ]
        }
    }


class OrderLineResponse(BaseModel):
    """Response schema for an order line."""

    line_id: int = Field(..., description="Line identifier")
    product_id: int = Field(..., description="Product identifier")
    quantity: int = Field(..., description="Units ordered")
    subtotal: Money = Field(..., description="Unit price times quantity")


class OrderResponse(BaseModel):
    """Response schema for a placed order."""

    order_id: int = Field(..., description="Order identifier")
    customer_id: int = Field(..., description="Ordering customer")
    order_date: datetime = Field(..., description="Creation timestamp (ISO 8601)")
    total_amount: Money = Field(..., description="Sum of line subtotals")
    lines: List[OrderLineResponse] = Field(..., description="Lines in basket order")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "order_id": 6,
                    "customer_id": 2,
                    "order_date": "2025-01-06T10:00:00Z",
                    "total_amount": "1500.00",
                    "lines": [
                        {"line_id": 8, "product_id": 1, "quantity": 1, "subtotal": "1200.00"},
                        {"line_id": 9, "product_id": 3, "quantity": 2, "subtotal": "300.00"},
                    ],
                }
            ]
        }
    }


class TotalSpentResponse(BaseModel):
    """Response schema for a customer's total spend."""

    customer_id: int = Field(..., description="Customer identifier")
    total_spent: Money = Field(..., description="Sum of order totals (0.00 if none)")


class TopCustomerRow(BaseModel):
    customer_id: int
    name: str
    email: str
    order_count: int
    total_spent: Money


class MonthlySalesRow(BaseModel):
    """Revenue for one category pivoted by month."""

    category: str
    jan: Money
    feb: Money
    mar: Money
    apr: Money
    may: Money
    jun: Money
    jul: Money
    aug: Money
    sep: Money
    oct: Money
    nov: Money
    dec: Money
    total: Money


class RankedProductRow(BaseModel):
    product_id: int
    name: str
    category: str
    price: Money


class OrderSequenceRow(BaseModel):
    """An order with its neighbours' amounts for the same customer."""

    order_id: int
    customer_id: int
    order_date: datetime
    total_amount: Money
    previous_amount: Optional[Money] = None
    next_amount: Optional[Money] = None


class CategoryTotalRow(BaseModel):
    """Revenue for a category; category is null on the grand total row."""

    category: Optional[str] = None
    units: int
    revenue: Money


class ErrorResponse(BaseModel):
    """Response schema for typed failures."""

    error: Dict[str, Any] = Field(..., description="code, message and type of the failure")


class HealthCheckResponse(BaseModel):
    """Response schema for health checks."""

    status: str = Field(..., description="Overall health status (healthy/unhealthy)")
    checks: Optional[Dict[str, Any]] = Field(default=None, description="Individual service checks")
    message: Optional[str] = Field(default=None, description="Status message")
