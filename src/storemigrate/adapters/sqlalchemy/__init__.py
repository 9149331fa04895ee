"""SQLAlchemy adapter package for storemigrate."""

from __future__ import annotations

from .engine import StartupError, configured_engine, is_started, session_factory, shutdown, startup
from .mappings import metadata
from .repositories import (
    SqlAlchemyCatalogImporter,
    SqlAlchemyImportJobRepository,
    SqlAlchemyStructureStore,
)

__all__ = [
    "SqlAlchemyCatalogImporter",
    "SqlAlchemyImportJobRepository",
    "SqlAlchemyStructureStore",
    "StartupError",
    "configured_engine",
    "is_started",
    "metadata",
    "session_factory",
    "shutdown",
    "startup",
]
