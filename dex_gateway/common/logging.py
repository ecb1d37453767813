"""Structured log helpers that keep credentials out of every log line.

RPC URLs carry API keys in their query strings and trade requests carry
private keys, so both message text and structured fields pass through the
sanitizer before they reach a handler.
"""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import urlsplit, urlunsplit

MASK = "***"

URL_RE = re.compile(r"https?://[^\s\"'<>]+", re.IGNORECASE)
SECRET_ASSIGNMENT_RE = re.compile(
    r"(?i)((?:api[-_]?key|private[-_]?key)[\"']?\s*[:=]\s*[\"']?)([^\s,;\"'&}]+)"
)
SECRET_FIELD_NAMES = frozenset({"apikey", "api_key", "privatekey", "private_key", "signer_key"})

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "exception": logging.ERROR,
}


def _strip_query(match: re.Match[str]) -> str:
    url = match.group(0)
    bare = url.rstrip(".,);]}")
    parts = urlsplit(bare)
    if not parts.netloc:
        return url
    return urlunsplit(parts._replace(query="", fragment="")) + url[len(bare):]


def sanitize_text(value: str) -> str:
    without_queries = URL_RE.sub(_strip_query, value)
    return SECRET_ASSIGNMENT_RE.sub(rf"\g<1>{MASK}", without_queries)


def _is_secret_name(name: Any) -> bool:
    return str(name).lower() in SECRET_FIELD_NAMES


def sanitize_value(value: Any) -> Any:
    if isinstance(value, str):
        return sanitize_text(value)
    if isinstance(value, dict):
        return {key: MASK if _is_secret_name(key) else sanitize_value(child) for key, child in value.items()}
    if isinstance(value, (list, tuple)):
        cleaned = [sanitize_value(item) for item in value]
        return cleaned if isinstance(value, list) else tuple(cleaned)
    return value


def log_event(
    logger: logging.Logger,
    *,
    level: str,
    event: str,
    message: str,
    **fields: Any,
) -> None:
    """Log ``message`` with ``event`` and ``fields`` attached as record attributes.

    ``level="exception"`` logs at ERROR with the active traceback.
    """
    extra: dict[str, Any] = {"event": event}
    extra.update(sanitize_value(fields))
    logger.log(
        _LEVELS.get(level, logging.INFO),
        sanitize_text(message),
        extra=extra,
        exc_info=level == "exception",
    )
