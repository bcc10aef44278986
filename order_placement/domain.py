"""
Value objects for order placement.

Money is always Decimal with two fractional digits:
    quantize_money(Decimal("150") * 2) == Decimal("300.00")
Floats are rejected rather than rounded.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from order_placement.exceptions import InvalidArgumentError

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

# Upper bound of the INTEGER id columns
MAX_ID = 2**31 - 1


def quantize_money(value: Decimal | int | str) -> Decimal:
    """Quantize a money value to two decimal places."""
    if isinstance(value, float):
        raise TypeError("Money must not be represented as float")
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


class BasketEntry(BaseModel):
    """One requested product and quantity. Order within the basket is significant."""

    model_config = ConfigDict(frozen=True)

    product_id: int
    quantity: int


class OrderLineView(BaseModel):
    """A persisted order line."""

    model_config = ConfigDict(frozen=True)

    line_id: int
    product_id: int
    quantity: int
    subtotal: Decimal


class PlacedOrder(BaseModel):
    """A persisted order with its lines in basket order."""

    model_config = ConfigDict(frozen=True)

    order_id: int
    customer_id: int
    order_date: datetime
    total_amount: Decimal
    lines: List[OrderLineView]

    @property
    def lines_total(self) -> Decimal:
        return sum((line.subtotal for line in self.lines), ZERO)


def _is_int(value: Any) -> bool:
    # bool is a subclass of int but never a valid id or quantity
    return isinstance(value, int) and not isinstance(value, bool)


def is_valid_id(value: Any) -> bool:
    """True for integers that fit the id columns (1..MAX_ID)."""
    return _is_int(value) and 1 <= value <= MAX_ID


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_basket(basket: Optional[Iterable[BasketEntry | Mapping[str, Any]]]) -> Sequence[BasketEntry]:
    """
    Validate a basket and return it as a tuple of BasketEntry.

    Accepts BasketEntry instances or mappings with product_id/quantity keys.

    Raises:
        InvalidArgumentError: Empty or non-iterable basket, missing fields,
            non-integer or out-of-range ids, non-positive quantities
    """
    if basket is None:
        raise InvalidArgumentError("Basket must not be empty")
    try:
        items = iter(basket)
    except TypeError as e:
        raise InvalidArgumentError("Basket must be a sequence of entries") from e

    entries = []
    for position, raw in enumerate(items):
        if isinstance(raw, BasketEntry):
            product_id, quantity = raw.product_id, raw.quantity
        elif isinstance(raw, Mapping):
            if "product_id" not in raw or "quantity" not in raw:
                raise InvalidArgumentError(
                    f"Basket entry {position} must have product_id and quantity"
                )
            product_id, quantity = raw["product_id"], raw["quantity"]
        else:
            raise InvalidArgumentError(f"Basket entry {position} has unsupported type")

        if not _is_int(product_id):
            raise InvalidArgumentError(f"Basket entry {position}: product_id must be an integer")
        if not is_valid_id(product_id):
            raise InvalidArgumentError(f"Basket entry {position}: product_id out of range")
        if not _is_int(quantity) or quantity <= 0:
            raise InvalidArgumentError(
                f"Basket entry {position}: quantity must be a positive integer"
            )
        entries.append(BasketEntry(product_id=product_id, quantity=quantity))

    if not entries:
        raise InvalidArgumentError("Basket must not be empty")
    return tuple(entries)
