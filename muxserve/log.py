import logging
from typing import Any, Protocol

import structlog

from muxserve.config import ILogConfig


class ILogger(Protocol):
    def info(self, event: str, **kw: Any) -> Any: ...


def get_logger(name: str = "muxserve") -> ILogger:
    return structlog.get_logger(name)


def configure_logging(config: ILogConfig) -> None:
    level = getattr(logging, config.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(message)s")

    renderer = (
        structlog.processors.JSONRenderer()
        if config.json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
    )
