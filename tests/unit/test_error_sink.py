"""
Unit tests for the import error sink
"""

from datetime import datetime
from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy import select

from core.exceptions import DatabaseError
from ingestion.loaders.error_sink import ImportErrorSink
from models.base import ImportErrorCode
from models.import_error import ImportErrorRecord
from models.station import Station
from schemas.outcome import RejectedRow


class TestImportErrorSink:
    """Test independent, immediate error writes"""

    @pytest.mark.asyncio
    async def test_record_is_committed_immediately(self, session_factory, db_session):
        sink = ImportErrorSink(db_session)

        await sink.record("rides.csv", RejectedRow(
            code=ImportErrorCode.END_BEFORE_START,
            row_number=7,
            raw_line="r2,...",
            ride_id="r2",
            message="ended before it started"
        ))

        assert sink.errors_recorded == 1
        async with session_factory() as session:
            errors = (await session.execute(select(ImportErrorRecord))).scalars().all()

        assert len(errors) == 1
        assert errors[0].source_file == "rides.csv"
        assert errors[0].row_number == 7
        assert errors[0].error_code == ImportErrorCode.END_BEFORE_START
        assert errors[0].raw_line == "r2,..."
        assert errors[0].ride_id == "r2"
        assert errors[0].occurred_at is not None

    @pytest.mark.asyncio
    async def test_identity_map_cleared_after_write(self, db_session):
        sink = ImportErrorSink(db_session)

        for i in range(3):
            await sink.record("rides.csv", RejectedRow(
                code=ImportErrorCode.MISSING_IDENTIFIER, row_number=i + 2, raw_line=""
            ))

        assert len(db_session.identity_map) == 0
        assert sink.errors_recorded == 3

    @pytest.mark.asyncio
    async def test_record_survives_rollback_of_other_session(self, session_factory):
        async with session_factory() as audit_session, session_factory() as batch_session:
            sink = ImportErrorSink(audit_session)
            await sink.record("rides.csv", RejectedRow(
                code=ImportErrorCode.MALFORMED_ROW, row_number=3, raw_line="a,b"
            ))

            batch_session.add(Station(
                station_id="S1",
                first_seen_at=datetime(2024, 7, 1),
                last_seen_at=datetime(2024, 7, 1)
            ))
            await batch_session.flush()
            await batch_session.rollback()

        async with session_factory() as session:
            errors = (await session.execute(select(ImportErrorRecord))).scalars().all()
            stations = (await session.execute(select(Station))).scalars().all()

        assert [e.error_code for e in errors] == [ImportErrorCode.MALFORMED_ROW]
        assert stations == []

    @pytest.mark.asyncio
    async def test_commit_failure_rolls_back_and_raises(self):
        """Test a failed error write surfaces as DatabaseError"""
        mock_session = AsyncMock()
        mock_session.add = Mock()
        mock_session.expunge_all = Mock()
        mock_session.commit = AsyncMock(side_effect=RuntimeError("database is locked"))

        sink = ImportErrorSink(mock_session)

        with pytest.raises(DatabaseError) as exc_info:
            await sink.record("rides.csv", RejectedRow(
                code=ImportErrorCode.MALFORMED_ROW, row_number=9, raw_line="x"
            ))

        assert exc_info.value.context["row_number"] == 9
        mock_session.rollback.assert_called_once()
        mock_session.expunge_all.assert_called_once()
        assert sink.errors_recorded == 0
