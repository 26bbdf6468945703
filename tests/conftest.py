"""
Pytest configuration and fixtures
"""

import zipfile
from typing import AsyncGenerator, Dict, Union

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import build_engine, build_session_factory, init_models

CSV_HEADER = (
    "ride_id,rideable_type,started_at,ended_at,"
    "start_station_name,start_station_id,end_station_name,end_station_id,"
    "start_lat,start_lng,end_lat,end_lng,member_casual"
)


def ride_line(
    ride_id="r1",
    rideable_type="classic_bike",
    started_at="2024-07-01 08:00:00",
    ended_at="2024-07-01 08:10:00",
    start_station_name="Broadway",
    start_station_id="S1",
    end_station_name="",
    end_station_id="",
    start_lat="40.75",
    start_lng="-73.99",
    end_lat="",
    end_lng="",
    member_casual="member"
) -> str:
    """One CSV record in CSV_HEADER column order"""
    return ",".join([
        ride_id, rideable_type, started_at, ended_at,
        start_station_name, start_station_id, end_station_name, end_station_id,
        start_lat, start_lng, end_lat, end_lng, member_casual
    ])


@pytest.fixture
def make_line():
    """Build a CSV ride record; override any column by keyword"""
    return ride_line


@pytest.fixture
def make_csv():
    """Build CSV text: header followed by the given records"""
    def _make(*lines: str, header: str = CSV_HEADER) -> str:
        return "\n".join([header, *lines]) + "\n"
    return _make


@pytest.fixture
def make_archive(tmp_path):
    """Write a ZIP archive with the given {entry name: content} mapping"""
    def _make(entries: Dict[str, Union[str, bytes]], name: str = "tripdata.zip"):
        path = tmp_path / name
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for entry_name, content in entries.items():
                if isinstance(content, str):
                    content = content.encode("utf-8")
                archive.writestr(entry_name, content)
        return path
    return _make


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest_asyncio.fixture(scope="function")
async def test_engine(database_url):
    """Create a file-backed SQLite engine with all tables"""
    engine = build_engine(database_url)
    await init_models(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()
