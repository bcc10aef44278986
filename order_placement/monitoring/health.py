"""
Health checks for readiness and liveness checks.

The database is the only dependency: placement and reporting both fail
without it, so readiness is exactly "the database answers".
"""
import time
from typing import Any, Dict, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from order_placement.database.connection import get_session_factory

logger = structlog.get_logger(__name__)


class HealthCheckError(Exception):
    """Raised when a dependency check fails."""


class HealthCheck:
    """Checks backing /health, /health/live and /health/ready."""

    def __init__(
        self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    ) -> None:
        self._session_factory = session_factory

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or get_session_factory()

    async def check_database(self) -> Dict[str, Any]:
        """
        Run a trivial query and report round-trip latency.

        Returns:
            Dict[str, Any]: status, dialect and latency_ms

        Raises:
            HealthCheckError: If the database cannot be reached
        """
        start = time.perf_counter()
        try:
            async with self.session_factory() as db:
                await db.execute(text("SELECT 1"))
                dialect = db.bind.dialect.name
        except (SQLAlchemyError, OSError) as e:
            logger.error("database_health_check_failed", error=str(e))
            raise HealthCheckError(f"Database unreachable: {e}") from e

        return {
            "status": "healthy",
            "dialect": dialect,
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
        }

    async def check_all(self) -> Dict[str, Any]:
        """Aggregate dependency status; unhealthy if any check fails."""
        try:
            database = await self.check_database()
        except HealthCheckError as e:
            database = {"status": "unhealthy", "error": str(e)}

        return {"status": database["status"], "checks": {"database": database}}

    async def liveness(self) -> Dict[str, Any]:
        # The process is up; dependencies are readiness concerns
        return {"status": "alive", "message": "Application is running"}

    async def readiness(self) -> Dict[str, Any]:
        return await self.check_all()
