"""SQLAlchemy database models for the order system."""
from datetime import datetime
from decimal import Decimal
from typing import List

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

PRICE = Numeric(10, 2)
AMOUNT = Numeric(12, 2)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class Customer(Base):
    """
    Customers table.

    Profile data is managed elsewhere; placement only checks existence.
    Deleting a customer deletes their orders.
    """

    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=func.now()
    )

    orders: Mapped[List["Order"]] = relationship(
        back_populates="customer",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        """String representation of Customer."""
        return f"<Customer(id={self.id}, email={self.email})>"


class Product(Base):
    """
    Products table.

    Stock is decremented by order placement and replenished externally.
    """

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    price: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("price >= 0", name="non_negative_price"),
        CheckConstraint("stock >= 0", name="non_negative_stock"),
    )

    def __repr__(self) -> str:
        """String representation of Product."""
        return f"<Product(id={self.id}, name={self.name}, stock={self.stock})>"


class Order(Base):
    """
    Orders table.

    The total starts at zero and is written once when placement finishes.
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    )
    order_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=func.now()
    )
    total_amount: Mapped[Decimal] = mapped_column(
        AMOUNT, nullable=False, default=Decimal("0.00")
    )

    customer: Mapped[Customer] = relationship(back_populates="orders")
    lines: Mapped[List["OrderLine"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderLine.id",
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="non_negative_total"),
        Index("idx_orders_customer_date", "customer_id", "order_date"),
    )

    def __repr__(self) -> str:
        """String representation of Order."""
        return (
            f"<Order(id={self.id}, customer_id={self.customer_id}, "
            f"total={self.total_amount})>"
        )


class OrderLine(Base):
    """
    Order line items table.

    Immutable once written; subtotal is unit price times quantity at order time.
    """

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)

    order: Mapped[Order] = relationship(back_populates="lines")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="positive_quantity"),
        CheckConstraint("subtotal >= 0", name="non_negative_subtotal"),
    )

    def __repr__(self) -> str:
        """String representation of OrderLine."""
        return (
            f"<OrderLine(id={self.id}, order_id={self.order_id}, "
            f"product_id={self.product_id}, quantity={self.quantity})>"
        )
