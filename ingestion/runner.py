# ============================================================================
# File: ingestion/runner.py
# Description: ZIP → CSV → stations/rides import orchestrator
# ============================================================================
"""
Import Runner - drives one archive through the ingestion pipeline.

For every CSV entry, strictly in order:

1. Decode - header-mapped records become typed rows or rejections
2. Validate - domain rules (ride id present, end not before start)
3. Reject - rejections go straight to the error sink (own session)
4. Buffer - accepted rows are keyed by ride id, last occurrence wins
5. Load - full buffers (and the remainder at end of entry) are upserted
   inside one atomic batch transaction

Batch N commits or rolls back before batch N+1 opens. A failed batch ends
the run; batches committed before it stay committed.
"""

import asyncio
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from sqlalchemy.ext.asyncio import async_sessionmaker

from core.config import settings
from core.exceptions import (
    ArchiveCorruptError,
    EmptyArchiveError,
    ETLException,
    ImportCancelledError
)
from ingestion.extractors.zip_source import ArchiveEntry, ZipArchiveSource
from ingestion.loaders.batch import BatchTransactionCoordinator
from ingestion.loaders.error_sink import ImportErrorSink
from ingestion.tracking import ImportRunTracker
from ingestion.transformers.normalizer import RideRowDecoder
from ingestion.transformers.validator import RideRowValidator
from models.base import ImportStatus
from schemas.outcome import RejectedRow
from schemas.ride_row import RideRow
import logging

logger = logging.getLogger(__name__)


@dataclass
class EntrySummary:
    entry_name: str
    rows_read: int = 0
    rows_loaded: int = 0
    rows_rejected: int = 0
    batches_committed: int = 0
    status: ImportStatus = ImportStatus.RUNNING


@dataclass
class ImportSummary:
    archive_path: str
    entries: List[EntrySummary] = field(default_factory=list)

    @property
    def rows_read(self) -> int:
        return sum(e.rows_read for e in self.entries)

    @property
    def rows_loaded(self) -> int:
        return sum(e.rows_loaded for e in self.entries)

    @property
    def rows_rejected(self) -> int:
        return sum(e.rows_rejected for e in self.entries)

    @property
    def batches_committed(self) -> int:
        return sum(e.batches_committed for e in self.entries)


class ZipRideImporter:
    """
    Import orchestrator

    Responsibilities:
    - Walk the archive's CSV entries one at a time
    - Keep the row buffer bounded by batch_size
    - Route rejected rows to the error sink
    - Hand full buffers to the batch coordinator
    - Honour cancellation only between rows and between entries
    - Record one import run per entry
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        batch_size: Optional[int] = None,
        progress_every: Optional[int] = None,
        raw_line_max_length: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None
    ):
        self.session_factory = session_factory
        self.batch_size = batch_size or settings.IMPORT_BATCH_SIZE
        self.progress_every = progress_every or settings.PROGRESS_EVERY_ROWS
        self.raw_line_max_length = raw_line_max_length or settings.RAW_LINE_MAX_LENGTH
        self.cancel_event = cancel_event

        if self.batch_size <= 0:
            raise ValueError("batch_size must be a positive integer")

    async def import_archive(self, archive_path: Union[str, Path]) -> ImportSummary:
        """
        Import every CSV entry of a ZIP archive.

        Raises:
            ArchiveNotFoundError / ArchiveCorruptError: archive unusable
            EmptyArchiveError: no non-empty CSV entries
            CSVExtractionError: an entry's header record cannot be parsed
            BatchLoadError: a batch failed and was rolled back
            ImportCancelledError: cancellation was requested
        """
        summary = ImportSummary(archive_path=str(archive_path))

        with ZipArchiveSource(archive_path) as source:
            entries = source.list_entries()
            if not entries:
                raise EmptyArchiveError(
                    "No CSV entries in archive",
                    context={"archive_path": str(archive_path)}
                )

            logger.info(f"CSV files in archive: {len(entries)}")

            async with self.session_factory() as batch_session, self.session_factory() as audit_session:
                sink = ImportErrorSink(audit_session)
                tracker = ImportRunTracker(audit_session)

                for entry in entries:
                    self._check_cancelled(f"before entry {entry.name}")
                    entry_summary = await self._import_entry(
                        source, entry, batch_session, sink, tracker
                    )
                    summary.entries.append(entry_summary)

        logger.info(
            f"Import done: {summary.rows_read:,} rows, {summary.rows_loaded:,} loaded, "
            f"{summary.rows_rejected:,} rejected, {summary.batches_committed} batches"
        )
        return summary

    async def _import_entry(
        self,
        source: ZipArchiveSource,
        entry: ArchiveEntry,
        batch_session,
        sink: ImportErrorSink,
        tracker: ImportRunTracker
    ) -> EntrySummary:
        logger.info(f"Importing: {entry.name} ({entry.size:,} bytes)")

        stats = EntrySummary(entry_name=entry.name)
        run_id = await tracker.start_run(str(source.archive_path), entry.name)

        coordinator = BatchTransactionCoordinator(batch_session, entry.name)
        decoder = RideRowDecoder(entry.name, self.raw_line_max_length)
        validator = RideRowValidator(self.raw_line_max_length)

        # Insertion-ordered; a repeated ride id replaces the earlier row
        buffer: Dict[str, RideRow] = {}

        try:
            with source.open_entry(entry) as stream:
                for outcome in decoder.decode(stream):
                    self._check_cancelled(f"{entry.name} row {outcome.row_number}", buffer)

                    stats.rows_read += 1
                    outcome = validator.validate(outcome)

                    if isinstance(outcome, RejectedRow):
                        stats.rows_rejected += 1
                        await sink.record(entry.name, outcome)
                    else:
                        buffer.pop(outcome.row.ride_id, None)
                        buffer[outcome.row.ride_id] = outcome.row

                        if len(buffer) >= self.batch_size:
                            await self._flush(coordinator, buffer, stats)

                    if stats.rows_read % self.progress_every == 0:
                        logger.info(
                            f"Progress {entry.name}: {stats.rows_read:,} rows, "
                            f"{stats.rows_rejected:,} errors"
                        )

            await self._flush(coordinator, buffer, stats)

        except ImportCancelledError as e:
            stats.status = ImportStatus.CANCELLED
            await self._complete(tracker, run_id, stats, e.message)
            raise

        except (zipfile.BadZipFile, zlib.error, EOFError) as e:
            stats.status = ImportStatus.FAILED
            await self._complete(tracker, run_id, stats, str(e))
            raise ArchiveCorruptError(
                "Archive entry could not be read",
                context={"archive_path": str(source.archive_path), "entry_name": entry.name},
                original_exception=e
            )

        except ETLException as e:
            stats.status = ImportStatus.FAILED
            await self._complete(tracker, run_id, stats, str(e))
            raise

        except Exception as e:
            logger.exception(f"Unexpected error importing {entry.name}")
            stats.status = ImportStatus.FAILED
            await self._complete(tracker, run_id, stats, str(e))
            raise ETLException(
                "Unexpected error in import pipeline",
                context={
                    "entry_name": entry.name,
                    "rows_read": stats.rows_read,
                    "rows_loaded": stats.rows_loaded,
                    "rows_rejected": stats.rows_rejected
                },
                original_exception=e
            )

        stats.status = ImportStatus.SUCCESS
        await tracker.complete_run(
            run_id,
            status=stats.status,
            rows_read=stats.rows_read,
            rows_loaded=stats.rows_loaded,
            rows_rejected=stats.rows_rejected,
            batches_committed=stats.batches_committed
        )

        logger.info(
            f"Finished {entry.name}: {stats.rows_read:,} rows, {stats.rows_loaded:,} loaded, "
            f"{stats.rows_rejected:,} errors"
        )
        return stats

    async def _flush(
        self,
        coordinator: BatchTransactionCoordinator,
        buffer: Dict[str, RideRow],
        stats: EntrySummary
    ) -> None:
        if not buffer:
            return

        rows = list(buffer.values())
        batch_index = coordinator.batches_committed + 1
        upsert_stats = await coordinator.run_batch(rows, batch_index=batch_index)

        buffer.clear()
        stats.rows_loaded += upsert_stats.rides_written
        stats.batches_committed = coordinator.batches_committed

    def _check_cancelled(self, where: str, buffer: Optional[Dict[str, RideRow]] = None) -> None:
        if self.cancel_event is None or not self.cancel_event.is_set():
            return

        discarded = len(buffer) if buffer else 0
        if buffer:
            buffer.clear()
        logger.warning(f"Import cancelled {where}; {discarded} buffered rows discarded")
        raise ImportCancelledError(
            "Import cancelled",
            context={"where": where, "buffered_rows_discarded": discarded}
        )

    async def _complete(
        self,
        tracker: ImportRunTracker,
        run_id: int,
        stats: EntrySummary,
        error_message: Optional[str] = None
    ) -> None:
        """Record a failed or cancelled run without masking the exception being raised"""
        try:
            await tracker.complete_run(
                run_id,
                status=stats.status,
                rows_read=stats.rows_read,
                rows_loaded=stats.rows_loaded,
                rows_rejected=stats.rows_rejected,
                batches_committed=stats.batches_committed,
                error_message=error_message
            )
        except Exception:
            # The run outcome (and any exception being raised) takes precedence
            logger.exception(f"Failed to record import run {run_id} for {stats.entry_name}")
