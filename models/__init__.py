"""
SQLAlchemy ORM models for database tables.

This package defines the database schema using SQLAlchemy ORM models:

Models:
    base: Base declarative class and shared enums (MemberType, ImportErrorCode, ImportStatus)
    station: Docking stations, created implicitly by the rides that reference them
    ride: Trips, keyed by the feed's ride id
    import_error: Append-only log of rejected CSV rows
    import_run: Per-entry import tracking and statistics

Usage:
    from models import Station, Ride, ImportErrorRecord, ImportRun
    from models.base import MemberType, ImportErrorCode

Relationships:
    - Station → Ride (one-to-many, as start station and as end station)
"""

from models.base import Base, MemberType, ImportErrorCode, ImportStatus
from models.station import Station
from models.ride import Ride
from models.import_error import ImportErrorRecord
from models.import_run import ImportRun

__all__ = [
    "Base",
    "MemberType",
    "ImportErrorCode",
    "ImportStatus",
    "Station",
    "Ride",
    "ImportErrorRecord",
    "ImportRun",
]
