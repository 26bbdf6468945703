"""
citibike - import Citi Bike trip archives and run reports.

Commands:
    citibike import <zip> [--db URL] [--batch N] [--log-level L]
    citibike stats [--db URL] [--list] [--all] [--q 1,2,8] [--minrides N] [--top N]
    citibike init-db [--db URL]

Exit codes: 0 success, 1 run failure, 2 usage error.
"""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

import pandas as pd
from pydantic import BaseModel

from analytics.queries import QUERY_REGISTRY
from core.config import settings
from core.database import build_engine, build_session_factory, init_models
from core.exceptions import ETLException
from core.logging import setup_logging
from ingestion.runner import ZipRideImporter
from schemas.stats import TimeSlotExtremes
import logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
    return number


def parse_query_numbers(value: str) -> List[int]:
    """Parse "1,2,8" into [1, 2, 8]; numbers without a query are dropped"""
    numbers = []
    for token in value.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            number = int(token)
        except ValueError:
            raise argparse.ArgumentTypeError(f"not a query number: {token!r}")
        if number in QUERY_REGISTRY and number not in numbers:
            numbers.append(number)
    return numbers


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="citibike",
        description="Import Citi Bike trip archives and run reports"
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL setting)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Import a ZIP archive of trip CSVs")
    import_parser.add_argument("archive", help="Path to the ZIP archive")
    import_parser.add_argument("--db", default=None, help="Database URL (default: DATABASE_URL setting)")
    import_parser.add_argument("--batch", type=_positive_int, default=None, help="Rows per batch transaction")
    import_parser.add_argument("--log-level", dest="log_level", default=argparse.SUPPRESS)

    stats_parser = subparsers.add_parser("stats", help="Run reporting queries")
    stats_parser.add_argument("--db", default=None, help="Database URL (default: DATABASE_URL setting)")
    stats_parser.add_argument("--list", action="store_true", help="List available queries")
    stats_parser.add_argument("--all", action="store_true", help="Run every query")
    stats_parser.add_argument("--q", type=parse_query_numbers, default=None, help="Comma separated query numbers")
    stats_parser.add_argument("--minrides", type=_positive_int, default=None, help="Minimum rides per station")
    stats_parser.add_argument("--top", type=_positive_int, default=None, help="Rows to show per query")

    init_parser = subparsers.add_parser("init-db", help="Create missing tables")
    init_parser.add_argument("--db", default=None, help="Database URL (default: DATABASE_URL setting)")

    return parser


def _print_queries() -> None:
    print("Available queries:")
    for number, query in sorted(QUERY_REGISTRY.items()):
        print(f"  {number}  {query.title}")


def format_result(result) -> str:
    """Render a query result as text tables"""
    if result is None:
        return "(no qualifying rows)"

    if isinstance(result, TimeSlotExtremes):
        return "\n".join([
            "Most member-heavy slots:",
            format_result(result.most_member_heavy),
            "",
            "Most casual-heavy slots:",
            format_result(result.most_casual_heavy),
        ])

    if isinstance(result, BaseModel):
        return "\n".join(f"{key}: {value}" for key, value in result.model_dump().items())

    if not result:
        return "(no qualifying rows)"

    frame = pd.DataFrame([item.model_dump() for item in result])
    return frame.to_string(index=False)


async def run_import(archive: str, database_url: Optional[str], batch_size: Optional[int]) -> int:
    engine = build_engine(database_url)
    cancel_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except (NotImplementedError, RuntimeError):
        # Signal handlers are unavailable on this platform or thread
        pass

    try:
        await init_models(engine)
        importer = ZipRideImporter(
            build_session_factory(engine),
            batch_size=batch_size,
            cancel_event=cancel_event
        )
        summary = await importer.import_archive(archive)
    except ETLException as e:
        logger.error(f"Import failed: {e}")
        return EXIT_FAILURE
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass
        await engine.dispose()

    for entry in summary.entries:
        print(
            f"{entry.entry_name}: {entry.rows_read:,} rows, {entry.rows_loaded:,} loaded, "
            f"{entry.rows_rejected:,} rejected, {entry.batches_committed} batches"
        )
    print(
        f"Total: {summary.rows_read:,} rows, {summary.rows_loaded:,} loaded, "
        f"{summary.rows_rejected:,} rejected"
    )
    return EXIT_OK


async def run_stats(
    database_url: Optional[str],
    numbers: List[int],
    min_rides: int,
    top_n: int
) -> int:
    engine = build_engine(database_url)
    session_factory = build_session_factory(engine)

    try:
        async with session_factory() as session:
            for number in numbers:
                query = QUERY_REGISTRY[number]
                logger.info(f"Running Q{number:02d}")
                result = await query.run(session, min_rides, top_n)
                print(f"\n=== Q{number:02d}: {query.title} ===")
                print(format_result(result))
    except Exception as e:
        logger.error(f"Report failed: {e}")
        return EXIT_FAILURE
    finally:
        await engine.dispose()

    return EXIT_OK


async def run_init_db(database_url: Optional[str]) -> int:
    engine = build_engine(database_url)
    try:
        await init_models(engine)
    except Exception as e:
        logger.error(f"Database initialisation failed: {e}")
        return EXIT_FAILURE
    finally:
        await engine.dispose()
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return EXIT_OK if e.code == 0 else EXIT_USAGE

    setup_logging(args.log_level, stream=sys.stderr)

    if args.command == "import":
        return asyncio.run(run_import(args.archive, args.db, args.batch))

    if args.command == "init-db":
        return asyncio.run(run_init_db(args.db))

    if args.all:
        numbers = sorted(QUERY_REGISTRY)
    else:
        numbers = args.q or []

    if args.list or not numbers:
        _print_queries()
        return EXIT_OK

    return asyncio.run(run_stats(
        args.db,
        numbers,
        args.minrides or settings.STATS_MIN_RIDES,
        args.top or settings.STATS_TOP_N
    ))


if __name__ == "__main__":
    sys.exit(main())
