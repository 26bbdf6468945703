"""
Ingestion pipeline: ZIP archives of Citi Bike trip CSVs into stations and rides.

Modules:
    runner: Import orchestrator that walks an archive entry by entry
    tracking: Per-entry import run records

Subpackages:
    extractors: ZIP archive source exposing CSV entries as text streams
    transformers: CSV record decoding/normalization and domain validation
    loaders: Station aggregation, chunked existence lookups, upserts,
             batch transactions and the import error sink

Architecture:
    Rows are decoded, validated and buffered strictly in arrival order:

    1. Decode - header-mapped records become typed rows or rejections
    2. Validate - rejected rows are written to import_errors and skipped
    3. Buffer - accepted rows keyed by ride id (last occurrence wins)
    4. Load - each full buffer is upserted in one atomic transaction,
       stations first, then rides

    Row problems never stop an import. A failed batch is rolled back and
    ends the run; earlier batches stay committed.

Usage:
    from core.database import build_engine, build_session_factory, init_models
    from ingestion.runner import ZipRideImporter

Example:
    engine = build_engine("sqlite+aiosqlite:///citibike.db")
    await init_models(engine)

    importer = ZipRideImporter(build_session_factory(engine), batch_size=30_000)
    summary = await importer.import_archive("202407-citibike-tripdata.zip")

    print(f"Loaded {summary.rows_loaded} rides, rejected {summary.rows_rejected}")
"""

from ingestion.extractors.zip_source import ZipArchiveSource
from ingestion.loaders.batch import BatchTransactionCoordinator
from ingestion.loaders.error_sink import ImportErrorSink
from ingestion.runner import ImportSummary, ZipRideImporter
from ingestion.transformers.normalizer import RideRowDecoder
from ingestion.transformers.validator import RideRowValidator

__all__ = [
    "ZipRideImporter",
    "ImportSummary",
    "ZipArchiveSource",
    "RideRowDecoder",
    "RideRowValidator",
    "BatchTransactionCoordinator",
    "ImportErrorSink",
]
