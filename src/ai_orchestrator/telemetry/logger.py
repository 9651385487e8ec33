"""Structured logging configuration with request correlation and secret redaction."""

import logging
import re
import sys
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

import orjson
import structlog
from structlog.processors import CallsiteParameter

from ai_orchestrator.config import Settings, get_settings

# Context variables for request tracking
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
modality_var: ContextVar[str] = ContextVar("modality", default="")


class SecretRedactor:
    """Redact credentials from log messages."""

    API_KEY_PATTERN = re.compile(r"\b(sk-|gsk_|hf_|api[_-]?key[\s=:]+)[\w-]{16,}\b", re.IGNORECASE)
    BEARER_PATTERN = re.compile(r"\bBearer\s+[\w.\-]+", re.IGNORECASE)
    QUERY_KEY_PATTERN = re.compile(r"([?&]key=)[\w-]+", re.IGNORECASE)
    EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b")

    @classmethod
    def redact(cls, value: Any) -> Any:
        """Redact secrets from value."""
        if not isinstance(value, str):
            return value

        value = cls.API_KEY_PATTERN.sub("[API_KEY_REDACTED]", value)
        value = cls.BEARER_PATTERN.sub("Bearer [TOKEN_REDACTED]", value)
        value = cls.QUERY_KEY_PATTERN.sub(r"\1[API_KEY_REDACTED]", value)
        value = cls.EMAIL_PATTERN.sub("[EMAIL_REDACTED]", value)

        return value


def add_context_vars(logger, method_name, event_dict):
    """Add context variables to log events."""
    if request_id := request_id_var.get():
        event_dict["request_id"] = request_id
    if modality := modality_var.get():
        event_dict["modality"] = modality
    return event_dict


def redact_sensitive_data(logger, method_name, event_dict):
    """Redact sensitive data from logs."""
    if "event" in event_dict:
        event_dict["event"] = SecretRedactor.redact(event_dict["event"])

    for key, value in event_dict.items():
        if key not in ["timestamp", "level", "logger", "request_id"]:
            if isinstance(value, str):
                event_dict[key] = SecretRedactor.redact(value)
            elif isinstance(value, dict):
                event_dict[key] = {k: SecretRedactor.redact(v) for k, v in value.items()}

    return event_dict


def setup_logging(
    level: str | None = None,
    format: str | None = None,
    redact_pii: bool = True,
    settings: Settings | None = None,
) -> None:
    """Configure structured logging."""
    settings = settings or get_settings()
    log_level = level or settings.log_level
    log_format = format or settings.log_format

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_context_vars,
    ]

    # Always redact in production
    if redact_pii or settings.is_production:
        processors.append(redact_sensitive_data)

    processors.extend(
        [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    CallsiteParameter.FILENAME,
                    CallsiteParameter.FUNC_NAME,
                    CallsiteParameter.LINENO,
                ]
            ),
            structlog.processors.ExceptionRenderer(),
        ]
    )

    if log_format == "json":
        processors.append(
            structlog.processors.JSONRenderer(serializer=lambda obj, **kw: orjson.dumps(obj, default=str).decode())
        )
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
    )

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class RequestContext:
    """Context manager for request-scoped logging."""

    def __init__(self, request_id: str | None = None, modality: str | None = None):
        """Initialize request context."""
        self.request_id = request_id or str(uuid4())
        self.modality = modality
        self.tokens = []

    def __enter__(self):
        """Enter context."""
        self.tokens.append((request_id_var, request_id_var.set(self.request_id)))
        if self.modality:
            self.tokens.append((modality_var, modality_var.set(self.modality)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context."""
        for var, token in reversed(self.tokens):
            var.reset(token)
        self.tokens.clear()
        return False
