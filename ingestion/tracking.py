"""
Import run tracking
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from models.base import ImportStatus, utcnow
from models.import_run import ImportRun
import logging

logger = logging.getLogger(__name__)


class ImportRunTracker:
    """
    Record one ImportRun row per archive entry.

    Uses the same independent session as the error sink, so run records
    are committed regardless of what happens to the batch transaction.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def start_run(self, archive_path: str, entry_name: str) -> int:
        """Create a RUNNING import run record and return its id"""
        run = ImportRun(
            archive_path=archive_path,
            entry_name=entry_name,
            status=ImportStatus.RUNNING,
            started_at=utcnow()
        )
        self.db.add(run)
        await self.db.commit()
        run_id = run.id
        self.db.expunge_all()
        return run_id

    async def complete_run(
        self,
        run_id: int,
        status: ImportStatus,
        rows_read: int = 0,
        rows_loaded: int = 0,
        rows_rejected: int = 0,
        batches_committed: int = 0,
        error_message: Optional[str] = None
    ) -> None:
        """Complete an import run with statistics"""
        run = await self.db.get(ImportRun, run_id)
        if run is None:
            logger.warning(f"Import run {run_id} disappeared before completion")
            return

        run.status = status
        run.completed_at = utcnow()
        run.duration_seconds = (run.completed_at - run.started_at).total_seconds()
        run.rows_read = rows_read
        run.rows_loaded = rows_loaded
        run.rows_rejected = rows_rejected
        run.batches_committed = batches_committed
        run.error_message = error_message

        await self.db.commit()
        self.db.expunge_all()
