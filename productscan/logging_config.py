"""
Structured logging setup.

Every module logs through ``structlog.get_logger(__name__)``; this
function routes those events through the standard library so the host
application controls handlers and levels.
"""

import logging
import sys
from typing import Union

import structlog


def configure_logging(level: Union[str, int] = "INFO", json_output: bool = False) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        level: Minimum level (name or number)
        json_output: Render JSON lines instead of the console format

    Example:
        >>> configure_logging("DEBUG")
        >>> structlog.get_logger("productscan").debug("Pipeline state", state="idle")
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)

    processors: list = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
