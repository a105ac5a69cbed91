"""
Centralized logging configuration for the Kanban backend.

Every Lambda writes one JSON object per log line so CloudWatch Logs Insights
can filter on request id, path and status. Session ids, tokens and PKCE
material must never reach the logs; ``StructuredFormatter`` masks any extra
field whose name looks like one of them.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# LogRecord attributes that are not user supplied ``extra`` fields
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
    }
)

SENSITIVE_FIELDS = ("token", "verifier", "secret", "cookie", "session_id", "auth_code")


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in SENSITIVE_FIELDS)


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs structured JSON logs for better CloudWatch parsing.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            log_entry[key] = "***" if _is_sensitive(key) else value

        return json.dumps(log_entry, default=str)


def setup_logger(
    name: str, level: Optional[str] = None, structured: bool = True
) -> logging.Logger:
    """
    Set up a logger with consistent configuration.

    Args:
        name: Logger name (typically __name__)
        level: Log level; defaults to the LOG_LEVEL environment variable or INFO
        structured: Whether to use structured JSON logging

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    level = level or os.getenv("LOG_LEVEL", "INFO")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)

    if structured:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Prevent propagation to avoid duplicate logs
    logger.propagate = False

    return logger


def log_lambda_event(
    logger: logging.Logger, event: Dict[str, Any], context: Any
) -> None:
    """
    Log Lambda event details in a structured way.

    Only routing metadata is logged; bodies, cookies and headers carrying
    credentials are left out.
    """
    headers = event.get("headers") or {}
    request_context = event.get("requestContext") or {}

    logger.info(
        "Lambda invocation started",
        extra={
            "request_id": getattr(context, "aws_request_id", "unknown"),
            "function_name": getattr(context, "function_name", "unknown"),
            "remaining_time_ms": getattr(
                context, "get_remaining_time_in_millis", lambda: 0
            )(),
            "http_method": event.get("httpMethod")
            or request_context.get("http", {}).get("method"),
            "path": event.get("path") or event.get("rawPath"),
            "user_agent": headers.get("user-agent") or headers.get("User-Agent"),
            "source_ip": request_context.get("http", {}).get("sourceIp"),
        },
    )


def log_lambda_response(
    logger: logging.Logger,
    response: Dict[str, Any],
    execution_time_ms: Optional[float] = None,
) -> None:
    """Log Lambda response details."""
    logger.info(
        "Lambda invocation completed",
        extra={
            "status_code": response.get("statusCode"),
            "execution_time_ms": execution_time_ms,
            "response_size": len(str(response.get("body", ""))),
        },
    )


def log_error(
    logger: logging.Logger, error: Exception, context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log errors with additional context.

    Args:
        logger: Logger instance
        error: Exception that occurred
        context: Additional context information
    """
    extra = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }

    if context:
        extra.update(context)

    logger.error(f"Error occurred: {type(error).__name__}", extra=extra, exc_info=True)
