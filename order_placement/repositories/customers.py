"""Customer lookups."""
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from order_placement.database.models import Customer


class CustomerRepository:
    """Reads and creates customers within the caller's session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def exists(self, customer_id: int) -> bool:
        stmt = select(Customer.id).where(Customer.id == customer_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def create(self, name: str, email: str) -> int:
        """Insert a customer and return its id. The caller commits."""
        customer = Customer(name=name, email=email, registered_at=datetime.now(timezone.utc))
        self.db.add(customer)
        await self.db.flush()
        return customer.id
