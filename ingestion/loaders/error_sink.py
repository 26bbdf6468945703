"""
Durable, independent recording of rejected rows
"""

from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import DatabaseError
from models.import_error import ImportErrorRecord
from models.base import utcnow
from schemas.outcome import RejectedRow
import logging

logger = logging.getLogger(__name__)


class ImportErrorSink:
    """
    Write one import error row per call and commit it immediately.

    The sink must be given its own session, separate from the batch
    session: an error row survives a later rollback of the batch that was
    being buffered, and never waits on it. The identity map is cleared
    after every write so a long import does not accumulate ORM state.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.errors_recorded = 0

    async def record(self, source_file: str, rejection: RejectedRow) -> None:
        self.db.add(ImportErrorRecord(
            source_file=source_file,
            row_number=rejection.row_number,
            error_code=rejection.code,
            raw_line=rejection.raw_line,
            occurred_at=utcnow(),
            ride_id=rejection.ride_id
        ))

        try:
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            raise DatabaseError(
                "Failed to record import error",
                context={
                    "operation": "INSERT",
                    "table_name": "import_errors",
                    "source_file": source_file,
                    "row_number": rejection.row_number
                },
                original_exception=e
            )
        finally:
            self.db.expunge_all()

        self.errors_recorded += 1
        logger.debug(
            f"{source_file} row {rejection.row_number}: {rejection.code.value} ({rejection.message})"
        )
