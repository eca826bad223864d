"""
Structured Logging

Every module logs through structlog so that events carry key/value
context (tenant id, record ids, counts) instead of formatted strings.
Output is JSON, one event per line. Decimal amounts and UUIDs are
rendered with str() so they read as "500.00" and plain ids.
"""

import logging
from typing import Optional

import structlog


LOG_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.JSONRenderer(default=str),
]

structlog.configure(
    processors=LOG_PROCESSORS,
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: Optional[str] = None) -> None:
    """
    Route structlog output through the stdlib root logger at `level`.

    Safe to call more than once; only the level changes after the first call.
    """
    if level is None:
        from spend_ledger.config import get_settings
        level = get_settings().app.log_level

    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, usually with `__name__`."""
    return structlog.get_logger(name)
