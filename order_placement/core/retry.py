"""
Classification of storage errors and the bounded retry policy.

A placement that loses a serialization race is re-run from scratch; the
whole call is retried, never a single basket entry.
"""
from typing import Any, Optional

import structlog
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from order_placement.config import Settings
from order_placement.exceptions import RetryableError, StorageUnavailableError

logger = structlog.get_logger(__name__)

# PostgreSQL: serialization_failure, deadlock_detected, lock_not_available
RETRYABLE_SQLSTATES = {"40001", "40P01", "55P03"}

RETRYABLE_MESSAGES = (
    "could not serialize access",
    "deadlock detected",
    "database is locked",
    "database table is locked",
)


def _sqlstate_from(error: BaseException) -> Optional[str]:
    orig = getattr(error, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None), error):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def is_retryable(error: BaseException) -> bool:
    """
    Decide whether a storage error is a transient conflict.

    Args:
        error: Exception raised by SQLAlchemy or the DB driver

    Returns:
        bool: True for serialization failures, deadlocks and lock timeouts
    """
    code = _sqlstate_from(error)
    if code in RETRYABLE_SQLSTATES:
        return True
    message = str(error).lower()
    return any(fragment in message for fragment in RETRYABLE_MESSAGES)


def translate_storage_error(error: SQLAlchemyError) -> Exception:
    """
    Map a SQLAlchemy error onto the placement error taxonomy.

    Args:
        error: Error raised inside a unit of work

    Returns:
        Exception: RetryableError or StorageUnavailableError
    """
    if isinstance(error, DBAPIError) and is_retryable(error):
        return RetryableError(f"Transaction conflict: {error.orig}", original_error=error)
    return StorageUnavailableError(f"Storage failure: {error}", original_error=error)


def _log_retry(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    logger.warning(
        "order_placement_retry",
        attempt=retry_state.attempt_number,
        error=str(outcome.exception()) if outcome is not None else None,
        next_sleep_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
    )


def placement_retrying(settings: Settings, **overrides: Any) -> AsyncRetrying:
    """
    Build the retry controller for one placement call.

    Only RetryableError is retried; the last one is re-raised unchanged.

    Args:
        settings: Application settings with the retry bounds
        **overrides: Extra tenacity arguments (tests pass a no-op sleep)

    Returns:
        AsyncRetrying: tenacity controller
    """
    options: dict[str, Any] = {
        "retry": retry_if_exception_type(RetryableError),
        "stop": stop_after_attempt(settings.placement_retry_max_attempts),
        "wait": wait_exponential(
            multiplier=settings.placement_retry_base_delay,
            max=settings.placement_retry_max_delay,
        ),
        "before_sleep": _log_retry,
        "reraise": True,
    }
    options.update(overrides)
    return AsyncRetrying(**options)
