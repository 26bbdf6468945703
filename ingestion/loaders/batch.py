"""
One atomic transaction per batch of buffered rides.

State machine:

    IDLE -> OPEN -> COMMITTING -> COMMITTED
             |          |
             +----------+--> ROLLED_BACK  (exception re-raised)

While a batch is open the session's autoflush is switched off, so staged
writes only reach the database at the explicit flushes. Whatever the
outcome, the previous autoflush setting is restored and the session's
identity map is cleared before control returns, so no ORM state survives
into the next batch.
"""

import enum
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import BatchLoadError
from ingestion.loaders.upsert import RideUpsertLoader, UpsertStats
from schemas.ride_row import RideRow
import logging

logger = logging.getLogger(__name__)


class BatchState(str, enum.Enum):
    IDLE = "idle"
    OPEN = "open"
    COMMITTING = "committing"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class BatchTransactionCoordinator:
    """
    Owns the import session for the lifetime of each batch.

    No retry: a failed batch is rolled back and the failure propagates as
    BatchLoadError, which ends the import run.
    """

    def __init__(self, db_session: AsyncSession, source_file: str):
        self.db = db_session
        self.source_file = source_file
        self.state = BatchState.IDLE
        self.batches_committed = 0

    @asynccontextmanager
    async def transaction(self, batch_index: Optional[int] = None, rows_in_batch: int = 0) -> AsyncIterator[AsyncSession]:
        """
        Scope one batch: yields the session, commits on clean exit, rolls
        back and raises BatchLoadError on any exception.
        """
        if self.state in (BatchState.OPEN, BatchState.COMMITTING):
            raise RuntimeError("A batch is already open on this coordinator")

        previous_autoflush = self.db.sync_session.autoflush
        self.db.sync_session.autoflush = False
        self.state = BatchState.OPEN

        try:
            if not self.db.in_transaction():
                await self.db.begin()

            yield self.db

            self.state = BatchState.COMMITTING
            await self.db.flush()
            await self.db.commit()
            self.state = BatchState.COMMITTED
            self.batches_committed += 1

        except Exception as e:
            logger.error(
                f"Batch {batch_index} failed for {self.source_file}. Rolling back.",
                exc_info=True
            )
            await self._rollback()

            raise BatchLoadError(
                "Batch upsert failed and was rolled back",
                context={
                    "source_file": self.source_file,
                    "batch_index": batch_index,
                    "rows_in_batch": rows_in_batch
                },
                original_exception=e
            )

        finally:
            # Covers BaseException exits (task cancellation) as well
            if self.state in (BatchState.OPEN, BatchState.COMMITTING):
                await self._rollback()
            self.db.sync_session.autoflush = previous_autoflush
            self.db.expunge_all()

    async def run_batch(self, rows: List[RideRow], batch_index: Optional[int] = None) -> UpsertStats:
        """Upsert stations then rides for one buffered batch, atomically"""
        if not rows:
            return UpsertStats()

        async with self.transaction(batch_index=batch_index, rows_in_batch=len(rows)) as session:
            stats = await RideUpsertLoader(session).load_batch(rows)

        logger.debug(
            f"Batch {batch_index} committed for {self.source_file}: "
            f"stations +{stats.stations_inserted}/~{stats.stations_updated}, "
            f"rides +{stats.rides_inserted}/~{stats.rides_updated}"
        )
        return stats

    async def _rollback(self) -> None:
        await self.db.rollback()
        self.state = BatchState.ROLLED_BACK
