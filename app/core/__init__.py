"""Core plumbing: settings, database session, error taxonomy."""

from app.core.config import get_settings, settings
from app.core.database import get_db
from app.core.errors import AppError, register_exception_handlers

__all__ = ["AppError", "get_db", "get_settings", "register_exception_handlers", "settings"]
