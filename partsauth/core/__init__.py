"""Core app configuration, database and credential primitives."""

from partsauth.core.config import get_settings, settings
from partsauth.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
