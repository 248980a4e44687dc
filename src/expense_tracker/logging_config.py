"""structlog setup for the API, the CLI and the services.

Events are snake_case names with key/value context, e.g.
``logger.info("expense_transitioned", expense_id=..., status="APPROVED")``.
Console rendering is used for ``log_format="console"``, one JSON object
per line otherwise. Values bound with ``bind_context`` (request id, actor
id) are merged into every event emitted in the same context.
"""

import logging
import sys
from collections.abc import Callable
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from expense_tracker.config import Settings, get_settings

# Never written to logs, whatever the caller passes.
REDACTED_KEYS = frozenset(
    {"password", "new_password", "current_password", "password_hash", "token"}
)

QUIET_LOGGERS = ("httpcore", "httpx", "uvicorn.access", "asyncio")


def redact_secrets(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    for key in REDACTED_KEYS & event_dict.keys():
        event_dict[key] = "***"
    return event_dict


def _static_fields(settings: Settings) -> Callable[..., EventDict]:
    app = settings.app_name
    environment = settings.environment.value

    def add_static_fields(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("app", app)
        event_dict.setdefault("environment", environment)
        return event_dict

    return add_static_fields


def build_processors(settings: Settings) -> list[Processor]:
    """Processor chain for the configured ``log_format``."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.log_format == "json":
        processors += [
            _static_fields(settings),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    return processors


def configure_logging(settings: Settings | None = None) -> None:
    """Route structlog through the stdlib root logger.

    Safe to call more than once; the root handlers are replaced each time.
    """
    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level.value)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_file))
    logging.basicConfig(format="%(message)s", level=level, handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))

    structlog.configure(
        processors=build_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
