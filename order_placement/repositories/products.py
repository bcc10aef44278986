"""Product stock and price access."""
from decimal import Decimal
from typing import Optional, Tuple

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from order_placement.database.models import Product
from order_placement.exceptions import InsufficientStockError

logger = structlog.get_logger(__name__)


class ProductRepository:
    """
    Product stock access for order placement.

    All stock reads and writes go through here, inside the caller's
    transaction. Nothing is cached between calls.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_stock_and_price(self, product_id: int) -> Optional[Tuple[int, Decimal]]:
        """
        Read current stock and unit price, locking the row until commit.

        The row lock is emitted as SELECT ... FOR UPDATE on dialects that
        support it and omitted elsewhere.

        Args:
            product_id: Product identifier

        Returns:
            Optional[Tuple[int, Decimal]]: (stock, price) or None if unknown
        """
        stmt = (
            select(Product.stock, Product.price)
            .where(Product.id == product_id)
            .with_for_update()
        )
        result = await self.db.execute(stmt)
        row = result.one_or_none()
        if row is None:
            return None
        return row.stock, row.price

    async def decrement_stock(self, product_id: int, amount: int) -> None:
        """
        Decrement stock by amount.

        The update is guarded in SQL so that a concurrent writer can never
        drive stock below zero, whatever the isolation level.

        Args:
            product_id: Product identifier
            amount: Units to remove (positive)

        Raises:
            InsufficientStockError: If the result would be negative
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock >= amount)
            .values(stock=Product.stock - amount)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            logger.warning(
                "stock_decrement_guard_rejected",
                product_id=product_id,
                amount=amount,
            )
            raise InsufficientStockError(product_id, requested=amount)
