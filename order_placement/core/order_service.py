"""
Order placement service.

Places an order for a customer from a basket of (product, quantity) entries:
1. Validate the basket shape
2. Open a unit of work (explicit isolation level)
3. Check the customer exists
4. Create the order with a zero total
5. Per entry, in basket order: read stock and price (row locked),
   reject if short, insert the line, decrement stock (guarded)
6. Store the total as the exact sum of the line subtotals
7. Commit

Any failure rolls back every write made by the call. Serialization
conflicts re-run the whole call with bounded backoff.
"""
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from order_placement.config import Settings, get_settings
from order_placement.core.retry import placement_retrying
from order_placement.core.unit_of_work import UnitOfWork
from order_placement.database.connection import get_session_factory
from order_placement.domain import (
    ZERO,
    BasketEntry,
    PlacedOrder,
    is_valid_id,
    normalize_basket,
    quantize_money,
)
from order_placement.exceptions import (
    CustomerNotFoundError,
    InsufficientStockError,
    InvalidArgumentError,
    NotFoundError,
    OrderNotFoundError,
    OrderPlacementError,
    RetryableError,
)
from order_placement.monitoring.metrics import metrics
from order_placement.repositories.orders import OrderRepository

logger = structlog.get_logger(__name__)

Basket = Iterable[BasketEntry | Mapping[str, Any]]

_OUTCOMES = (
    (NotFoundError, "not_found"),
    (InvalidArgumentError, "invalid_argument"),
    (InsufficientStockError, "insufficient_stock"),
    (RetryableError, "retryable"),
)


def _outcome_label(error: BaseException) -> str:
    for error_type, label in _OUTCOMES:
        if isinstance(error, error_type):
            return label
    return "fatal"


class OrderPlacementService:
    """
    Stateless order placement orchestrator.

    Holds no locks and no stock cache; all coordination is left to the
    database transaction opened per attempt.
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        settings: Optional[Settings] = None,
        **retry_overrides: Any,
    ):
        """
        Initialize the service.

        Args:
            session_factory: Optional session factory (defaults to the app engine)
            settings: Optional settings (defaults to get_settings())
            **retry_overrides: tenacity arguments overriding the retry policy
        """
        self.settings = settings or get_settings()
        self._session_factory = session_factory
        self._retry_overrides = retry_overrides

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    def _unit_of_work(self) -> UnitOfWork:
        return UnitOfWork(self.session_factory, self.settings.database_isolation_level)

    async def place_order(self, customer_id: int, basket: Basket) -> int:
        """
        Place an order and return its id.

        Args:
            customer_id: Ordering customer
            basket: Ordered entries of product_id and quantity

        Returns:
            int: New order id

        Raises:
            CustomerNotFoundError: Unknown customer
            InvalidArgumentError: Empty basket, bad quantity, unknown product
            InsufficientStockError: A quantity exceeds current stock
            RetryableError: Conflict persisted through every retry
            StorageUnavailableError: Any other storage failure
        """
        placed = await self.place_order_detailed(customer_id, basket)
        return placed.order_id

    async def place_order_detailed(self, customer_id: int, basket: Basket) -> PlacedOrder:
        """
        Place an order and return it with its lines.

        Same contract as place_order().
        """
        start_time = time.perf_counter()

        logger.info("order_placement_started", customer_id=customer_id)

        try:
            if isinstance(customer_id, bool) or not isinstance(customer_id, int):
                raise InvalidArgumentError("customer_id must be an integer")
            entries = normalize_basket(basket)
            if not is_valid_id(customer_id):
                # No row can carry an id outside the column range
                raise CustomerNotFoundError(customer_id)

            attempt_number = 0
            async for attempt in placement_retrying(self.settings, **self._retry_overrides):
                with attempt:
                    attempt_number += 1
                    if attempt_number > 1:
                        metrics.record_retry()
                    placed = await self._place_once(customer_id, entries)

        except OrderPlacementError as e:
            duration = time.perf_counter() - start_time
            metrics.record_placement(_outcome_label(e), duration)
            log = logger.error if _outcome_label(e) == "fatal" else logger.warning
            log(
                "order_placement_rejected",
                customer_id=customer_id,
                error_code=e.error_code,
                error=e.message,
                duration_seconds=duration,
            )
            raise

        duration = time.perf_counter() - start_time
        metrics.record_placement("placed", duration)
        metrics.record_order_placed(placed.total_amount, len(placed.lines))

        logger.info(
            "order_placed",
            customer_id=customer_id,
            order_id=placed.order_id,
            total_amount=placed.total_amount,
            lines=len(placed.lines),
            duration_seconds=duration,
        )
        return placed

    async def _place_once(self, customer_id: int, entries: Sequence[BasketEntry]) -> PlacedOrder:
        """Run one attempt inside a fresh unit of work."""
        async with self._unit_of_work() as uow:
            if not await uow.customers.exists(customer_id):
                raise CustomerNotFoundError(customer_id)

            order_date = datetime.now(timezone.utc)
            order_id = await uow.orders.create_order(customer_id, order_date)

            total = ZERO
            for entry in entries:
                stock_and_price = await uow.products.get_stock_and_price(entry.product_id)
                if stock_and_price is None:
                    raise InvalidArgumentError(f"Unknown product: {entry.product_id}")
                stock, price = stock_and_price

                if entry.quantity > stock:
                    metrics.record_stock_rejection()
                    raise InsufficientStockError(
                        entry.product_id, requested=entry.quantity, available=stock
                    )

                subtotal = quantize_money(Decimal(price) * entry.quantity)
                await uow.orders.add_line(order_id, entry.product_id, entry.quantity, subtotal)
                await uow.products.decrement_stock(entry.product_id, entry.quantity)
                total += subtotal

            await uow.orders.set_total(order_id, total)
            placed = await uow.orders.get_order(order_id)
            if placed is None:
                raise RuntimeError(f"Order {order_id} vanished before commit")
            await uow.commit()

        return placed

    async def get_order(self, order_id: int) -> PlacedOrder:
        """
        Read back an order with its lines.

        Raises:
            OrderNotFoundError: Unknown order id
        """
        if not is_valid_id(order_id):
            raise OrderNotFoundError(order_id)
        async with self.session_factory() as db:
            order = await OrderRepository(db).get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order
