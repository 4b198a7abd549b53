"""
Database package exposing configuration, engine/session management and the ORM models.
"""

from .base import Base
from .config import get_settings, Settings
from .session import (
    dispose_engine,
    get_async_session,
    get_engine,
    get_session_maker,
)

# Import models so they are registered with SQLAlchemy metadata
from . import models as models  # noqa: F401

__all__ = [
    "Base",
    "Settings",
    "get_settings",
    "get_engine",
    "get_session_maker",
    "get_async_session",
    "dispose_engine",
    "models",
]
