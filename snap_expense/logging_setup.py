"""
Structured Logging Setup

All modules log through structlog:

    import structlog
    logger = structlog.get_logger(__name__)
    logger.info("expense_added", expense_id=..., count=...)

Event names are snake_case verbs; context goes in keyword arguments.
configure_logging() is called once by the entry point (app/main.py).
Library modules never configure logging themselves.
"""

import logging
import sys
from typing import Optional

import structlog

from snap_expense.config import get_settings

_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure stdlib logging and structlog exactly once.

    Args:
        level: Log level name. Defaults to APP_LOG_LEVEL
            (DEBUG when APP_DEBUG_MODE is set).
    """
    global _configured
    if _configured:
        return

    app_settings = get_settings().app
    level_name = level or ("DEBUG" if app_settings.debug_mode else app_settings.log_level)
    numeric_level = getattr(logging, level_name.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True
