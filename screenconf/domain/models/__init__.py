"""
Domain models initialization.

Exports all SQLAlchemy ORM models.
"""

from screenconf.domain.models.base import Base
from screenconf.domain.models.screen import EventScreen, Screen

__all__ = ["Base", "EventScreen", "Screen"]
