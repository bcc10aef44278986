"""
Read-only reporting queries.

Written with portable SQLAlchemy expressions (window functions, CASE
pivots, UNION ALL instead of ROLLUP) so they run on PostgreSQL and SQLite.
Money columns come back quantized to two places.
"""
import calendar
from typing import Any, Dict, List, Optional

from sqlalchemy import case, desc, extract, func, literal, null, select, union_all
from sqlalchemy.ext.asyncio import AsyncSession

from order_placement.database.models import AMOUNT, Customer, Order, OrderLine, Product
from order_placement.domain import ZERO, as_utc, quantize_money

MONTH_COLUMNS = [calendar.month_abbr[m].lower() for m in range(1, 13)]


def _money(value: Any) -> Any:
    # SQLite hands back REAL for some aggregates
    return None if value is None else quantize_money(str(value))


class ReportRepository:
    """Reporting queries over customers, products and orders."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def top_customers(self, limit: int = 5) -> List[Dict[str, Any]]:
        """
        Customers ranked by total spend, highest first.

        Customers without orders are not listed. Ties are ordered by id.
        """
        total_spent = func.sum(Order.total_amount).label("total_spent")
        stmt = (
            select(
                Customer.id,
                Customer.name,
                Customer.email,
                func.count(Order.id).label("order_count"),
                total_spent,
            )
            .join(Order, Order.customer_id == Customer.id)
            .group_by(Customer.id, Customer.name, Customer.email)
            .order_by(desc(total_spent), Customer.id)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [
            {
                "customer_id": row.id,
                "name": row.name,
                "email": row.email,
                "order_count": row.order_count,
                "total_spent": _money(row.total_spent),
            }
            for row in result
        ]

    async def monthly_sales(self, year: int) -> List[Dict[str, Any]]:
        """
        Revenue per category pivoted into one column per month.

        Returns one row per category with keys category, jan..dec and total.
        """
        month = extract("month", Order.order_date)
        columns = [
            func.coalesce(
                func.sum(case((month == number, OrderLine.subtotal), else_=ZERO)), ZERO
            ).label(name)
            for number, name in enumerate(MONTH_COLUMNS, start=1)
        ]
        stmt = (
            select(Product.category, *columns, func.sum(OrderLine.subtotal).label("total"))
            .select_from(OrderLine)
            .join(Order, Order.id == OrderLine.order_id)
            .join(Product, Product.id == OrderLine.product_id)
            .where(extract("year", Order.order_date) == year)
            .group_by(Product.category)
            .order_by(Product.category)
        )
        result = await self.db.execute(stmt)

        rows = []
        for row in result.mappings():
            entry: Dict[str, Any] = {"category": row["category"]}
            for name in MONTH_COLUMNS:
                entry[name] = _money(row[name])
            entry["total"] = _money(row["total"])
            rows.append(entry)
        return rows

    async def second_highest_priced_products(self) -> List[Dict[str, Any]]:
        """
        Products ranked second by price within their category.

        Dense ranking: equal prices share a rank, so several products can be
        returned for one category; they are ordered by id. Categories with a
        single price point produce no row.
        """
        price_rank = (
            func.dense_rank()
            .over(partition_by=Product.category, order_by=desc(Product.price))
            .label("price_rank")
        )
        ranked = select(
            Product.id, Product.name, Product.category, Product.price, price_rank
        ).subquery()
        stmt = (
            select(ranked.c.id, ranked.c.name, ranked.c.category, ranked.c.price)
            .where(ranked.c.price_rank == 2)
            .order_by(ranked.c.category, ranked.c.id)
        )
        result = await self.db.execute(stmt)
        return [
            {
                "product_id": row.id,
                "name": row.name,
                "category": row.category,
                "price": _money(row.price),
            }
            for row in result
        ]

    async def order_sequences(self, customer_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Orders annotated with the previous and next order amounts of the same customer.

        The first order of a customer has previous_amount None, the last has
        next_amount None.
        """
        window = {
            "partition_by": Order.customer_id,
            "order_by": (Order.order_date, Order.id),
        }
        stmt = select(
            Order.id,
            Order.customer_id,
            Order.order_date,
            Order.total_amount,
            func.lag(Order.total_amount, type_=AMOUNT).over(**window).label("previous_amount"),
            func.lead(Order.total_amount, type_=AMOUNT).over(**window).label("next_amount"),
        )
        if customer_id is not None:
            stmt = stmt.where(Order.customer_id == customer_id)
        stmt = stmt.order_by(Order.customer_id, Order.order_date, Order.id)

        result = await self.db.execute(stmt)
        return [
            {
                "order_id": row.id,
                "customer_id": row.customer_id,
                "order_date": as_utc(row.order_date),
                "total_amount": _money(row.total_amount),
                "previous_amount": _money(row.previous_amount),
                "next_amount": _money(row.next_amount),
            }
            for row in result
        ]

    async def category_totals(self) -> List[Dict[str, Any]]:
        """
        Revenue grouped by category followed by a grand total row.

        The grand total row has category None and comes last.
        """
        revenue = func.coalesce(func.sum(OrderLine.subtotal), ZERO)
        units = func.coalesce(func.sum(OrderLine.quantity), 0)

        per_category = (
            select(
                Product.category.label("category"),
                units.label("units"),
                revenue.label("revenue"),
                literal(0).label("is_grand_total"),
            )
            .select_from(OrderLine)
            .join(Product, Product.id == OrderLine.product_id)
            .group_by(Product.category)
        )
        grand_total = select(
            null().label("category"),
            units.label("units"),
            revenue.label("revenue"),
            literal(1).label("is_grand_total"),
        ).select_from(OrderLine)

        combined = union_all(per_category, grand_total).subquery()
        stmt = select(
            combined.c.category,
            combined.c.units,
            combined.c.revenue,
        ).order_by(combined.c.is_grand_total, combined.c.category)

        result = await self.db.execute(stmt)
        return [
            {
                "category": row.category,
                "units": int(row.units),
                "revenue": _money(row.revenue),
            }
            for row in result
        ]
