"""Read-side queries over placed orders."""
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from order_placement.database.connection import get_session_factory
from order_placement.domain import ZERO, is_valid_id
from order_placement.repositories.orders import OrderRepository

logger = structlog.get_logger(__name__)


class TotalSpentQuery:
    """Sums order totals per customer."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory

    async def get_total_spent(self, customer_id: int) -> Decimal:
        """
        Total amount spent by a customer across all orders.

        Returns Decimal("0.00") for customers without orders, including
        unknown customer ids.
        """
        if not is_valid_id(customer_id):
            return ZERO
        session_factory = self._session_factory or get_session_factory()
        async with session_factory() as db:
            total = await OrderRepository(db).total_spent(customer_id)

        logger.debug("total_spent_computed", customer_id=customer_id, total=total)
        return total
