"""
Explicit transaction boundary for order placement.

One unit of work is one session on one connection with a declared isolation
level. Leaving the block without commit() rolls everything back, including
when the task is cancelled.
"""
from types import TracebackType
from typing import Optional, Type

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from order_placement.core.retry import translate_storage_error
from order_placement.repositories.customers import CustomerRepository
from order_placement.repositories.orders import OrderRepository
from order_placement.repositories.products import ProductRepository

logger = structlog.get_logger(__name__)


class UnitOfWork:
    """
    Async context manager owning one transaction.

    Usage:
        async with UnitOfWork(session_factory) as uow:
            order_id = await uow.orders.create_order(...)
            await uow.commit()

    SQLAlchemy errors raised inside the block surface as RetryableError or
    StorageUnavailableError after the rollback.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        isolation_level: str = "SERIALIZABLE",
    ):
        self.session_factory = session_factory
        self.isolation_level = isolation_level
        self.session: Optional[AsyncSession] = None
        self._committed = False

    async def __aenter__(self) -> "UnitOfWork":
        self.session = self.session_factory()
        try:
            # Must be set before the transaction starts on this connection
            await self.session.connection(
                execution_options={"isolation_level": self._effective_isolation_level()}
            )
        except SQLAlchemyError as e:
            await self.session.close()
            raise translate_storage_error(e) from e

        self.customers = CustomerRepository(self.session)
        self.products = ProductRepository(self.session)
        self.orders = OrderRepository(self.session)
        self._committed = False
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        if self.session is None:
            return False
        try:
            if not self._committed:
                await self.session.rollback()
                if exc_type is not None:
                    logger.info(
                        "unit_of_work_rolled_back",
                        error_type=exc_type.__name__,
                    )
        except SQLAlchemyError as e:
            # The connection is gone; the server discards the transaction
            logger.error("unit_of_work_rollback_failed", error=str(e))
            if exc is None:
                raise translate_storage_error(e) from e
        finally:
            await self.session.close()
            self.session = None

        if isinstance(exc, SQLAlchemyError):
            raise translate_storage_error(exc) from exc
        return False

    def _effective_isolation_level(self) -> str:
        # SQLite only distinguishes SERIALIZABLE from READ UNCOMMITTED
        bind = self.session.bind if self.session is not None else None
        if bind is not None and bind.dialect.name == "sqlite":
            return "SERIALIZABLE"
        return self.isolation_level

    async def commit(self) -> None:
        """Commit the transaction; conflicts detected at commit are translated."""
        if self.session is None:
            raise RuntimeError("commit() called outside an active unit of work")
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            raise translate_storage_error(e) from e
        self._committed = True
