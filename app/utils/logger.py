"""Structured logging for the LibPulse API.

structlog is configured once per process. Every entry carries the current
request_id (bound by RequestContextMiddleware) so a single API call can be
followed from authentication through the outbound Supabase requests.
"""

import logging
import sys
import time
from contextvars import ContextVar
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

#: Outbound calls slower than this are logged at WARNING instead of DEBUG.
SLOW_CALL_THRESHOLD_MS: float = 1000.0


def add_request_id(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Attach the active request_id, if any."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
) -> None:
    """Configure structlog for the application.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        json_output: JSON lines when True (deployments), coloured console
            output when False (local development).
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_request_id,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "libpulse") -> structlog.stdlib.BoundLogger:
    """Return a logger bound to ``name`` (usually the module name)."""
    return structlog.get_logger(name)


class PerformanceLogger:
    """Context manager that times an outbound call and logs the result.

    Usage::

        with PerformanceLogger("supabase_get_project", logger, project_id=pid):
            response = await client.get(url)

    Failures are logged at ERROR with the exception text; successful calls are
    logged at DEBUG, or WARNING when slower than SLOW_CALL_THRESHOLD_MS.
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        **context: Any,
    ) -> None:
        self.operation = operation
        self.logger = logger or get_logger()
        self.context = context
        self.start_time: float = 0

    def __enter__(self) -> "PerformanceLogger":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        duration_ms = round((time.perf_counter() - self.start_time) * 1000, 2)

        if exc_type is not None:
            self.logger.error(
                f"{self.operation}_failed",
                duration_ms=duration_ms,
                error=str(exc_val),
                error_type=exc_type.__name__,
                **self.context,
            )
            return

        log_method = (
            self.logger.warning if duration_ms > SLOW_CALL_THRESHOLD_MS else self.logger.debug
        )
        log_method(f"{self.operation}_completed", duration_ms=duration_ms, **self.context)


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def clear_request_id() -> None:
    request_id_var.set(None)


# Sensible defaults at import time; main.py reconfigures from the environment.
configure_logging()
