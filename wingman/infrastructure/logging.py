"""JSON-lines logging for the generation pipeline.

Every record is one JSON object on stdout. Call sites pass structured
fields through ``extra`` (``provider``, ``model_id``, ``attempt``,
``used_cache`` ...); the request/user/conversation ids come from context
variables set by the HTTP layer.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
conversation_id_var: ContextVar[str | None] = ContextVar("conversation_id", default=None)

_CONTEXT_VARS = {
    "request_id": request_id_var,
    "user_id": user_id_var,
    "conversation_id": conversation_id_var,
}

# Record attributes copied into the JSON line when set (and not None)
EXTRA_FIELDS = (
    # attempt / provider
    "provider",
    "model_id",
    "attempt",
    "used_cache",
    "status_code",
    "status",
    "backoff_seconds",
    "models_tried",
    # cache
    "cache_key",
    # timing and tokens
    "duration_ms",
    "latency_ms",
    "tokens_in",
    "tokens_out",
    "cached_tokens",
    # errors
    "error_code",
    "error_message",
    "error",
    # prompt / domain
    "repair_stages",
    "prompt_version",
    "tone_level",
    "strategy",
    "operation",
    "metadata",
)

_QUIET_LOGGERS = ("asyncio", "uvicorn.access", "httpx", "httpcore", "aiosqlite")


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname.lower(),
            "service": getattr(record, "service", None) or record.name.split(".", 1)[0],
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, var in _CONTEXT_VARS.items():
            value = var.get()
            if value:
                entry[key] = value
        entry.update(
            (name, value)
            for name in EXTRA_FIELDS
            if (value := getattr(record, name, None)) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class NamespaceFilter(logging.Filter):
    """Let DEBUG records through only for the listed top-level namespaces."""

    def __init__(self, debug_namespaces: list[str]):
        super().__init__()
        self.debug_namespaces = frozenset(debug_namespaces)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno > logging.DEBUG:
            return True
        return record.name.split(".", 1)[0] in self.debug_namespaces


def setup_logging(log_level: str = "INFO", debug_namespaces: list[str] | None = None) -> None:
    """Install the JSON handler on the root logger.

    Args:
        log_level: Level for everything outside ``debug_namespaces``
        debug_namespaces: Logger namespaces (``orchestrator``, ``cache`` ...)
            that also emit DEBUG records
    """
    namespaces = list(debug_namespaces or [])

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    handler.addFilter(NamespaceFilter(namespaces))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    # With debug namespaces the root must pass DEBUG; the filter does the gating
    root.setLevel(logging.DEBUG if namespaces else log_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("logging").info(
        "Logging configured",
        extra={"service": "logging", "metadata": {"log_level": log_level, "debug_namespaces": namespaces}},
    )


def set_request_context(
    request_id: str | None = None,
    user_id: str | None = None,
    conversation_id: str | None = None,
) -> None:
    """Bind ids to the current task; ``None`` leaves a value unchanged."""
    for var, value in ((request_id_var, request_id), (user_id_var, user_id), (conversation_id_var, conversation_id)):
        if value is not None:
            var.set(value)


def clear_request_context() -> None:
    for var in _CONTEXT_VARS.values():
        var.set(None)


__all__ = [
    "StructuredFormatter",
    "NamespaceFilter",
    "setup_logging",
    "set_request_context",
    "clear_request_context",
    "request_id_var",
    "user_id_var",
    "conversation_id_var",
]
