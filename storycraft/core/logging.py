"""
Structured logging for StoryCraft.

Log lines carry the app name, environment and any request context bound with
``LogContext``/``bind_context``. Credentials never reach the output: values
of password and token fields are masked before rendering.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from storycraft.core.config import settings

REDACTED = "***"

# Event keys whose values are masked
SENSITIVE_KEYS = frozenset(
    {"password", "new_password", "current_password", "token", "authorization", "secret_key"}
)

QUIET_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx", "httpcore")


def add_app_context(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["app"] = settings.app_name
    event_dict["env"] = settings.app_env
    return event_dict


def redact_sensitive(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credential values that were passed as log fields."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def _renderer() -> Processor:
    if settings.is_development:
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return structlog.processors.JSONRenderer()


def setup_logging(level: Optional[str] = None) -> None:
    """
    Route structlog and stdlib logging through one handler on stdout.

    Development gets a readable console; other environments emit one JSON
    object per line.

    Args:
        level: Overrides ``settings.log_level``
    """
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.ExtraAdder(),
        add_app_context,
        redact_sensitive,
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _renderer()],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # SQL statements are only wanted when DATABASE_ECHO is on
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database.echo else logging.WARNING
    )
    logging.getLogger("storycraft").setLevel(log_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger.

    Example:
        logger = get_logger(__name__)
        logger.info("Proposal saved", proposal_id="proposal_123", owner_id="u-1")
    """
    return structlog.get_logger(name)


class LogContext:
    """
    Bind fields to every log line emitted inside the block.

    Example:
        with LogContext(request_id="req_abc123", user_uuid="u-456"):
            logger.info("Signing in")
    """

    def __init__(self, **kwargs: Any) -> None:
        self.context = kwargs
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self._tokens = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        # Restores values that were bound before the block
        structlog.contextvars.reset_contextvars(**self._tokens)


def bind_context(**kwargs: Any) -> None:
    """Bind fields to all later log lines of the current request."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
