"""
Structured logging setup for the relationship coach API.
Provides JSON-formatted logs with consistent fields for production monitoring.

Text written by partners (messages, coach turns, prompts) never reaches a log
line. Services log lengths, counts, vibe ids and outcome kinds, and
_redact_user_text replaces any user-text field that slips through with its
length.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory

USER_TEXT_FIELDS = frozenset(
    {
        "content",
        "message_text",
        "original_content",
        "refined_text",
        "reply_text",
        "system_prompt",
        "user_prompt",
    }
)


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging with JSON output for production.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    structlog.configure(
        processors=[
            # request_id and client_ip bound by RequestContextMiddleware
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _redact_user_text,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # The OpenAI SDK logs request bodies at DEBUG through httpx
    for noisy in ("httpx", "httpcore", "openai", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _redact_user_text(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Swap user-authored text fields for their length."""
    for field in USER_TEXT_FIELDS.intersection(event_dict):
        value = event_dict[field]
        if isinstance(value, str):
            event_dict[field] = f"<redacted {len(value)} chars>"
    return event_dict


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def log_ai_fallback(feature: str, reason: str, **fields: Any) -> None:
    """
    Record that an AI feature answered with fallback content.

    Args:
        feature: "refine", "refine_all", "coach" or "radar"
        reason: Failure reason handed back to the client (e.g. "rate limited")
    """
    logger = get_logger("ai.fallback")
    logger.info("AI feature fell back", feature=feature, reason=reason, **fields)


def log_request(method: str, path: str, status_code: int, duration_ms: float, user_id: str = None):
    """Log HTTP requests with consistent fields."""
    logger = get_logger("http")

    log_data = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": duration_ms,
    }

    if user_id:
        log_data["user_id"] = user_id

    if status_code >= 500:
        logger.error("HTTP request errored", **log_data)
    elif status_code >= 400:
        logger.warning("HTTP request failed", **log_data)
    else:
        logger.info("HTTP request completed", **log_data)
