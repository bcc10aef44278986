"""Order and order line persistence."""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from order_placement.database.models import Order, OrderLine
from order_placement.domain import ZERO, OrderLineView, PlacedOrder, as_utc, quantize_money


class OrderRepository:
    """Creates orders and their lines, and reads them back."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_order(self, customer_id: int, timestamp: datetime) -> int:
        """
        Insert an order with a zero total.

        Args:
            customer_id: Owning customer
            timestamp: Order creation time

        Returns:
            int: New order id
        """
        order = Order(customer_id=customer_id, order_date=timestamp, total_amount=ZERO)
        self.db.add(order)
        await self.db.flush()
        return order.id

    async def add_line(
        self, order_id: int, product_id: int, quantity: int, subtotal: Decimal
    ) -> int:
        """
        Append a line to an order.

        Lines are flushed one at a time so ids ascend in basket order.

        Returns:
            int: New line id
        """
        line = OrderLine(
            order_id=order_id,
            product_id=product_id,
            quantity=quantity,
            subtotal=quantize_money(subtotal),
        )
        self.db.add(line)
        await self.db.flush()
        return line.id

    async def set_total(self, order_id: int, amount: Decimal) -> None:
        stmt = (
            update(Order)
            .where(Order.id == order_id)
            .values(total_amount=quantize_money(amount))
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(stmt)

    async def get_lines(self, order_id: int) -> List[OrderLineView]:
        stmt = select(OrderLine).where(OrderLine.order_id == order_id).order_by(OrderLine.id)
        result = await self.db.execute(stmt)
        return [
            OrderLineView(
                line_id=line.id,
                product_id=line.product_id,
                quantity=line.quantity,
                subtotal=quantize_money(line.subtotal),
            )
            for line in result.scalars().all()
        ]

    async def get_order(self, order_id: int) -> Optional[PlacedOrder]:
        """
        Read an order and its lines.

        Returns:
            Optional[PlacedOrder]: The order or None if not found
        """
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        order = result.scalar_one_or_none()
        if order is None:
            return None

        return PlacedOrder(
            order_id=order.id,
            customer_id=order.customer_id,
            order_date=as_utc(order.order_date),
            total_amount=quantize_money(order.total_amount),
            lines=await self.get_lines(order_id),
        )

    async def total_spent(self, customer_id: int) -> Decimal:
        """Sum of order totals for a customer; zero when there are none."""
        stmt = select(func.coalesce(func.sum(Order.total_amount), ZERO)).where(
            Order.customer_id == customer_id
        )
        result = await self.db.execute(stmt)
        return quantize_money(str(result.scalar_one()))
