"""Logging setup: one stdout handler, JSON lines in production."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping

# Record attributes that identify which session, location or cache entry a
# message is about
CONTEXT_FIELDS = ("session_id", "location", "cache_key")

PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# Chatty client libraries, kept at WARNING
QUIET_LOGGERS = ("httpx", "httpcore", "groq", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, carrying any context fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "src": f"{record.module}:{record.lineno}",
        }
        payload.update(
            (field, getattr(record, field)) for field in CONTEXT_FIELDS if hasattr(record, field)
        )
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Route every logger to stdout at `level`, replacing earlier handlers."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(PLAIN_FORMAT))
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class SessionLogger(logging.LoggerAdapter):
    """Adds the bound session context to every record; per-call extras win."""

    def process(self, msg: str, kwargs: MutableMapping[str, Any]) -> tuple[str, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str, session_id: str | None = None, location: str | None = None) -> SessionLogger:
    """Logger bound to a client session and, optionally, its location name."""
    context = {"session_id": session_id, "location": location}
    return SessionLogger(logging.getLogger(name), {k: v for k, v in context.items() if v})
