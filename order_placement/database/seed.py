"""Sample catalogue used for local development and tests."""
from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from order_placement.database.models import Order, OrderLine, Product
from order_placement.repositories.customers import CustomerRepository

logger = structlog.get_logger(__name__)

# On an empty database the rows receive ids 1..n in list order.
CUSTOMERS = [
    {"name": "Alice Johnson", "email": "alice@example.com"},
    {"name": "Bob Smith", "email": "bob@example.com"},
    {"name": "Carol White", "email": "carol@example.com"},
    {"name": "David Brown", "email": "david@example.com"},
]

PRODUCTS = [
    {"name": "Laptop", "category": "Electronics", "price": Decimal("1200.00"), "stock": 10},
    {"name": "Smartphone", "category": "Electronics", "price": Decimal("800.00"), "stock": 25},
    {"name": "Headphones", "category": "Electronics", "price": Decimal("150.00"), "stock": 50},
    {"name": "Office Chair", "category": "Furniture", "price": Decimal("250.00"), "stock": 15},
    {"name": "Standing Desk", "category": "Furniture", "price": Decimal("450.00"), "stock": 5},
    {"name": "Coffee Maker", "category": "Appliances", "price": Decimal("90.00"), "stock": 30},
]

# (customer email, order date, [(product name, quantity), ...])
ORDERS = [
    ("alice@example.com", datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc),
     [("Laptop", 1), ("Headphones", 1)]),
    ("carol@example.com", datetime(2024, 1, 20, 14, 0, tzinfo=timezone.utc),
     [("Smartphone", 1)]),
    ("carol@example.com", datetime(2024, 2, 11, 16, 45, tzinfo=timezone.utc),
     [("Office Chair", 2), ("Standing Desk", 1)]),
    ("alice@example.com", datetime(2024, 3, 2, 9, 30, tzinfo=timezone.utc),
     [("Coffee Maker", 2)]),
    ("david@example.com", datetime(2024, 3, 28, 11, 15, tzinfo=timezone.utc),
     [("Headphones", 2)]),
]


async def seed_sample_data(db: AsyncSession, with_orders: bool = True) -> None:
    """
    Insert the sample customers, products and (optionally) historical orders.

    Historical orders carry their recorded totals and do not touch stock.

    Args:
        db: Database session
        with_orders: Also insert the historical orders
    """
    customer_repo = CustomerRepository(db)
    customers = {}
    for row in CUSTOMERS:
        customers[row["email"]] = await customer_repo.create(row["name"], row["email"])

    products = {}
    for row in PRODUCTS:
        products[row["name"]] = Product(**row)
        db.add(products[row["name"]])
        await db.flush()

    if with_orders:
        for email, order_date, items in ORDERS:
            lines = [
                OrderLine(
                    product_id=products[name].id,
                    quantity=quantity,
                    subtotal=products[name].price * quantity,
                )
                for name, quantity in items
            ]
            db.add(
                Order(
                    customer_id=customers[email],
                    order_date=order_date,
                    total_amount=sum((line.subtotal for line in lines), Decimal("0.00")),
                    lines=lines,
                )
            )
            await db.flush()

    await db.commit()
    logger.info(
        "sample_data_seeded",
        customers=len(CUSTOMERS),
        products=len(PRODUCTS),
        orders=len(ORDERS) if with_orders else 0,
    )
