from .async_utils import best_effort
from .logging import log_event, sanitize_text, sanitize_value

__all__ = [
    "best_effort",
    "log_event",
    "sanitize_text",
    "sanitize_value",
]
