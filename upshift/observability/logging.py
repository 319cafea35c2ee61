"""Structured logging configuration using structlog.

JSON output for production, console output for development. Step results
routinely carry connection strings and credentials, so a redaction processor
scrubs them before rendering.
"""

import re
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from typing import Any, cast

import structlog
from structlog.types import EventDict, WrappedLogger

SENSITIVE_KEYS: frozenset[str] = frozenset({
    "password",
    "passwd",
    "secret",
    "token",
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "credentials",
    "private_key",
    "access_token",
    "refresh_token",
    "dsn",
    "database_url",
})

# user:password@ inside URLs, e.g. postgres://admin:hunter2@db/app
URL_CREDENTIALS_PATTERN = re.compile(r"(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*://)[^/\s:@]+:[^/\s@]+@")
BEARER_PATTERN = re.compile(r"(?i)bearer\s+[a-z0-9._~+/=-]+")

LEVELS: dict[str, int] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}


class SecretRedactor:
    """Processor that masks secrets in log events.

    Keys listed in SENSITIVE_KEYS are replaced outright; string values are
    scanned for embedded URL credentials and bearer tokens.
    """

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        return cast(EventDict, self._redact_mapping(event_dict))

    def _redact_mapping(self, data: MutableMapping[str, Any]) -> dict[str, Any]:
        return {
            key: "[REDACTED]" if key.lower() in SENSITIVE_KEYS else self._redact_value(value)
            for key, value in data.items()
        }

    def _redact_value(self, value: Any) -> Any:
        if isinstance(value, str):
            value = URL_CREDENTIALS_PATTERN.sub(r"\g<scheme>[REDACTED]@", value)
            return BEARER_PATTERN.sub("Bearer [REDACTED]", value)
        if isinstance(value, dict):
            return self._redact_mapping(value)
        if isinstance(value, (list, tuple)):
            return [self._redact_value(item) for item in value]
        return value


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    redact_secrets: bool = True,
) -> None:
    """Configure structured logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: "json" for production, "console" for development
        redact_secrets: Whether to mask credentials in log events
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if redact_secrets:
        processors.append(SecretRedactor())

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(LEVELS.get(level.upper(), 20)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance bound to the given name."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))


@contextmanager
def bound_plan_context(plan_id: str) -> Iterator[None]:
    """Bind plan_id to every log event emitted inside the block."""
    with structlog.contextvars.bound_contextvars(plan_id=plan_id):
        yield
