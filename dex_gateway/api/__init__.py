from .app import build_app_from_settings, create_app
from .handlers import Backend

__all__ = [
    "Backend",
    "build_app_from_settings",
    "create_app",
]
