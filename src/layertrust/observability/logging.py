"""Structured logging configuration for layertrust.

This module configures structlog for structured logging with support for
both development (console) and production (JSON) output formats.

Environment Variables:
    LAYERTRUST_LOG_FORMAT: Set to "json" for JSON output, "console" for colored output
    LAYERTRUST_LOG_LEVEL: Set log level (DEBUG, INFO, WARNING, ERROR)
    LAYERTRUST_SERVICE_NAME: Service name to include in logs
    LAYERTRUST_DEBUG: Set to "true" or "1" to log maintainer metadata unredacted

Example:
    >>> from layertrust.observability.logging import get_logger, configure_logging
    >>> configure_logging(log_format="json", log_level="INFO")
    >>> logger = get_logger("layertrust.verify")
    >>> logger.info("layertrust.verify.started", layer_hash="sha256:...")
"""

import logging
import os
import sys
from collections.abc import Mapping
from typing import Any

import structlog
from structlog.typing import Processor

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "console"
DEFAULT_SERVICE_NAME = "layertrust"

ENV_LOG_FORMAT = "LAYERTRUST_LOG_FORMAT"
ENV_LOG_LEVEL = "LAYERTRUST_LOG_LEVEL"
ENV_SERVICE_NAME = "LAYERTRUST_SERVICE_NAME"
ENV_DEBUG = "LAYERTRUST_DEBUG"

REDACTED_PLACEHOLDER = "***REDACTED***"

# Key substrings (case-insensitive) that indicate sensitive data to redact
_SENSITIVE_KEY_PATTERNS = frozenset(
    {"password", "token", "secret", "private", "key", "authorization", "auth", "credential"}
)

_logging_configured = False


def _is_sensitive_key(key: str) -> bool:
    lower = key.lower()
    return any(pattern in lower for pattern in _SENSITIVE_KEY_PATTERNS)


def sanitize_for_logging(data: Mapping[str, Any]) -> dict[str, Any]:
    """Sanitize a mapping for safe logging by redacting sensitive field values.

    Keys matching (case-insensitive) password, token, secret, private, key,
    authorization, auth or credential have their values replaced with
    REDACTED_PLACEHOLDER. Nested dicts and lists of dicts are handled recursively.
    When LAYERTRUST_DEBUG is set the data is returned as a plain copy.

    Example:
        >>> sanitize_for_logging({"vcs": "git", "deploy_token": "abc"})
        {'vcs': 'git', 'deploy_token': '***REDACTED***'}
    """
    if not data:
        return {}
    if is_debug_mode():
        return dict(data)
    result: dict[str, Any] = {}
    for k, v in data.items():
        if _is_sensitive_key(k):
            result[k] = REDACTED_PLACEHOLDER
        elif isinstance(v, Mapping):
            result[k] = sanitize_for_logging(v)
        elif isinstance(v, list):
            result[k] = [
                sanitize_for_logging(item) if isinstance(item, Mapping) else item for item in v
            ]
        else:
            result[k] = v
    return result


def is_debug_mode() -> bool:
    """Return True if LAYERTRUST_DEBUG is set to a truthy value (e.g. true, 1)."""
    value = os.environ.get(ENV_DEBUG, "").strip().lower()
    return value in ("true", "1", "yes", "on")


def _get_log_level() -> str:
    return os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper()


def _get_log_format() -> str:
    return os.environ.get(ENV_LOG_FORMAT, DEFAULT_LOG_FORMAT).lower()


def _get_service_name() -> str:
    return os.environ.get(ENV_SERVICE_NAME, DEFAULT_SERVICE_NAME)


def _get_shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _get_renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(
    log_format: str | None = None,
    log_level: str | None = None,
    service_name: str | None = None,
    force: bool = False,
) -> None:
    """Configure structured logging for the process.

    Args:
        log_format: Output format - "json" or "console". Defaults to env var or "console"
        log_level: Minimum log level. Defaults to env var or "INFO"
        service_name: Service name for log context. Defaults to env var or "layertrust"
        force: If True, reconfigure even if already configured
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    log_format = log_format or _get_log_format()
    log_level = (log_level or _get_log_level()).upper()
    service_name = service_name or _get_service_name()

    if not isinstance(getattr(logging, log_level, None), int):
        raise ValueError(f"Unknown log level: {log_level!r}")

    shared_processors = _get_shared_processors()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _get_renderer(log_format),
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level))

    structlog.contextvars.bind_contextvars(service=service_name)

    _logging_configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given name.

    If logging has not been configured, it is configured with default settings.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.bind(layer_hash="sha256:...").info("layertrust.layer.signed")
    """
    if not _logging_configured:
        configure_logging()

    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables that will be included in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
