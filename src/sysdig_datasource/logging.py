import logging
from typing import Any

import structlog

from sysdig_datasource.config.settings import get_settings


def configure_logging(level: int | str | None = None, *, json_output: bool = True) -> None:
    """Configure structlog/standard logging bridge.

    Hosts that embed the datasource usually collect JSON lines; pass
    ``json_output=False`` for a human-readable console during development.
    """

    if level is None:
        level = get_settings().log_level

    renderer: Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s", force=True)


def bind_context(**kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Logger carrying datasource fields (name, panel, ...) on every event."""

    return structlog.get_logger().bind(**kwargs)
