"""
Core utilities and configuration for the Citi Bike ride importer.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Async engine, session factory and table creation
    exceptions: Custom exception hierarchy for run-level failures
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import build_engine, build_session_factory, init_models
    from core.exceptions import ArchiveNotFoundError, BatchLoadError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Create tables and open a session
    engine = build_engine()
    await init_models(engine)
    async with build_session_factory(engine)() as session:
        pass
"""

from core.config import settings
from core.database import build_engine, build_session_factory, get_session, init_models
from core.exceptions import (
    ArchiveCorruptError,
    ArchiveNotFoundError,
    BatchLoadError,
    CSVExtractionError,
    DatabaseError,
    EmptyArchiveError,
    ETLException,
    ExtractionError,
    ImportCancelledError,
    LoadError,
    RowDecodeError,
    TransformationError
)
from core.logging import setup_logging

__all__ = [
    "settings",
    "build_engine",
    "build_session_factory",
    "init_models",
    "get_session",
    "setup_logging",
    # Exceptions
    "ETLException",
    "ExtractionError",
    "ArchiveNotFoundError",
    "ArchiveCorruptError",
    "EmptyArchiveError",
    "CSVExtractionError",
    "TransformationError",
    "RowDecodeError",
    "LoadError",
    "DatabaseError",
    "BatchLoadError",
    "ImportCancelledError",
]
