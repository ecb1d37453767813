from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from dex_gateway.common.logging import sanitize_text, sanitize_value

GATEWAY_LOGGER = "dex_gateway"
AIOHTTP_LOGGERS = ("aiohttp.access", "aiohttp.server", "aiohttp.web")

# attributes every LogRecord has; anything else on a record came in via ``extra``
_RECORD_ATTRIBUTES = frozenset(logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
}


class JsonFormatter(logging.Formatter):
    """One JSON object per line with structured extras promoted to top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize_text(record.getMessage()),
        }
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
        }
        payload.update(sanitize_value(extras))

        if record.exc_info:
            payload["exception"] = sanitize_text(self.formatException(record.exc_info))

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger(level: str = "INFO") -> logging.Logger:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    for name in (GATEWAY_LOGGER, *AIOHTTP_LOGGERS):
        target = logging.getLogger(name)
        target.handlers.clear()
        target.addHandler(handler)
        target.setLevel(level)
        target.propagate = False

    return logging.getLogger(GATEWAY_LOGGER)
