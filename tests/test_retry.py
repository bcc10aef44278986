"""
Tests for storage error classification, the retry policy and the unit of work.
"""
import asyncio
from datetime import datetime, timezone
from typing import Any

import pytest
from sqlalchemy.exc import IntegrityError, InvalidRequestError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from order_placement.config import Settings
from order_placement.core.retry import is_retryable, placement_retrying, translate_storage_error
from order_placement.core.unit_of_work import UnitOfWork
from order_placement.exceptions import (
    InsufficientStockError,
    RetryableError,
    StorageUnavailableError,
)


class FakeDriverError(Exception):
    """Driver exception carrying a SQLSTATE like asyncpg/psycopg do."""

    def __init__(self, message: str, sqlstate: str):
        super().__init__(message)
        self.sqlstate = sqlstate


class TestErrorClassification:
    """Transient conflicts versus everything else."""

    @pytest.mark.unit
    @pytest.mark.parametrize("sqlstate", ["40001", "40P01", "55P03"])
    def test_retryable_sqlstates(self, sqlstate: str) -> None:
        error = OperationalError("UPDATE products", {}, FakeDriverError("conflict", sqlstate))

        assert is_retryable(error)
        assert isinstance(translate_storage_error(error), RetryableError)

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "message",
        [
            "database is locked",
            "could not serialize access due to concurrent update",
            "deadlock detected",
        ],
    )
    def test_retryable_messages(self, message: str) -> None:
        error = OperationalError("INSERT INTO orders", {}, Exception(message))

        assert is_retryable(error)
        translated = translate_storage_error(error)
        assert isinstance(translated, RetryableError)
        assert translated.retryable is True
        assert translated.original_error is error

    @pytest.mark.unit
    def test_constraint_violation_is_fatal(self) -> None:
        error = IntegrityError(
            "INSERT INTO order_items", {}, FakeDriverError("foreign key violation", "23503")
        )

        assert not is_retryable(error)
        translated = translate_storage_error(error)
        assert isinstance(translated, StorageUnavailableError)
        assert translated.retryable is False

    @pytest.mark.unit
    def test_non_driver_error_is_fatal(self) -> None:
        """Only errors raised by the driver can be conflicts."""
        error = InvalidRequestError("database is locked")

        assert isinstance(translate_storage_error(error), StorageUnavailableError)


class TestPlacementRetrying:
    """Bounded retry controller."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stops_after_max_attempts(self, test_settings: Settings) -> None:
        settings = test_settings.model_copy(
            update={"placement_retry_max_attempts": 4, "placement_retry_base_delay": 0.0}
        )
        attempts = 0

        with pytest.raises(RetryableError):
            async for attempt in placement_retrying(settings):
                with attempt:
                    attempts += 1
                    raise RetryableError("could not serialize access")

        assert attempts == 4

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_does_not_retry_other_errors(self, test_settings: Settings) -> None:
        attempts = 0

        with pytest.raises(StorageUnavailableError):
            async for attempt in placement_retrying(test_settings):
                with attempt:
                    attempts += 1
                    raise StorageUnavailableError("disk full")

        assert attempts == 1


class TestUnitOfWork:
    """Leaving the block without commit() discards every write."""

    async def _add_order(self, uow: UnitOfWork) -> int:
        return await uow.orders.create_order(2, datetime.now(timezone.utc))

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_commit_persists(
        self, session_factory: async_sessionmaker[AsyncSession], snapshot: Any
    ) -> None:
        before = await snapshot()

        async with UnitOfWork(session_factory) as uow:
            await self._add_order(uow)
            await uow.products.decrement_stock(6, 1)
            await uow.commit()

        after = await snapshot()
        assert after["orders"] == before["orders"] + 1
        assert after["stock"][6] == before["stock"][6] - 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_commit_rolls_back(
        self, session_factory: async_sessionmaker[AsyncSession], snapshot: Any
    ) -> None:
        before = await snapshot()

        async with UnitOfWork(session_factory) as uow:
            await self._add_order(uow)
            await uow.products.decrement_stock(6, 1)

        assert await snapshot() == before

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("error_type", [ValueError, asyncio.CancelledError])
    async def test_exception_rolls_back_and_propagates(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        snapshot: Any,
        error_type: type,
    ) -> None:
        before = await snapshot()

        with pytest.raises(error_type):
            async with UnitOfWork(session_factory) as uow:
                await self._add_order(uow)
                raise error_type()

        assert await snapshot() == before

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_commit_outside_block_fails(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        uow = UnitOfWork(session_factory)

        with pytest.raises(RuntimeError, match="outside an active unit of work"):
            await uow.commit()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_storage_error_is_translated(
        self, session_factory: async_sessionmaker[AsyncSession], snapshot: Any
    ) -> None:
        before = await snapshot()

        with pytest.raises(RetryableError):
            async with UnitOfWork(session_factory) as uow:
                await self._add_order(uow)
                raise OperationalError("UPDATE products", {}, Exception("database is locked"))

        assert await snapshot() == before

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_guarded_decrement_refuses_negative_stock(
        self, session_factory: async_sessionmaker[AsyncSession], snapshot: Any
    ) -> None:
        before = await snapshot()

        with pytest.raises(InsufficientStockError):
            async with UnitOfWork(session_factory) as uow:
                await uow.products.decrement_stock(5, 6)

        assert await snapshot() == before

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sqlite_always_serializable(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with UnitOfWork(session_factory, isolation_level="READ COMMITTED") as uow:
            assert uow._effective_isolation_level() == "SERIALIZABLE"
