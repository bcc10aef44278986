"""
Structured logging configuration.

structlog renders every event as one JSON line. Stdlib loggers (uvicorn,
SQLAlchemy) go through python-json-logger so the output stays uniform.
Money values are logged as their exact decimal string.
"""
import logging
import sys
from decimal import Decimal
from typing import Any, Callable, Optional

import structlog
from pythonjsonlogger import jsonlogger

from order_placement.config import Settings, get_settings

EventDict = dict[str, Any]

# Loggers that are chatty at INFO and rarely useful in service logs
QUIET_LOGGERS = ("aiosqlite", "asyncpg", "uvicorn.access")


def render_decimals(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace Decimal values with their string form so totals keep their cents."""
    for key, value in event_dict.items():
        if isinstance(value, Decimal):
            event_dict[key] = str(value)
    return event_dict


def app_context(settings: Settings) -> Callable[[Any, str, EventDict], EventDict]:
    """
    Build a processor stamping application name and environment on each event.

    Args:
        settings: Settings providing app_name and app_env

    Returns:
        structlog processor
    """
    app_name = settings.app_name
    app_env = settings.app_env

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("app_name", app_name)
        event_dict.setdefault("app_env", app_env)
        return event_dict

    return processor


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        settings: Optional settings (defaults to get_settings())
    """
    settings = settings or get_settings()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            render_decimals,
            app_context(settings),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "@timestamp", "levelname": "level", "name": "logger"},
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(settings.log_level)

    # SQL statements are only wanted when echo is switched on
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database_echo else logging.WARNING
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.get_logger(__name__).info(
        "logging_configured",
        log_level=settings.log_level,
        isolation_level=settings.database_isolation_level,
    )
