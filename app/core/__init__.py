"""Core app configuration, database and error handling."""

from app.core.config import get_settings, settings
from app.core.database import StoreNotConfiguredError, get_db
from app.core.errors import ReportError

__all__ = ["get_settings", "settings", "get_db", "ReportError", "StoreNotConfiguredError"]
