"""
Insert-or-merge stations and rides (idempotent upsert by natural key)
"""

from dataclasses import dataclass
from typing import Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from ingestion.loaders.existence import EntityType, fetch_existing
from ingestion.loaders.stations import StationCandidate, build_station_candidates, merge_station_fields
from models.ride import Ride
from models.station import Station
from schemas.ride_row import RideRow
import logging

logger = logging.getLogger(__name__)


@dataclass
class UpsertStats:
    stations_inserted: int = 0
    stations_updated: int = 0
    rides_inserted: int = 0
    rides_updated: int = 0

    @property
    def rides_written(self) -> int:
        return self.rides_inserted + self.rides_updated


def apply_ride_fields(ride: Ride, row: RideRow) -> None:
    """
    Copy a decoded row onto a Ride.

    Timestamps and member type are required and always overwritten;
    optional fields only when the incoming value is present.
    """
    ride.started_at = row.started_at
    ride.ended_at = row.ended_at
    ride.member_type = row.member_type

    if row.rideable_type:
        ride.rideable_type = row.rideable_type
    if row.start_station_id:
        ride.start_station_id = row.start_station_id
    if row.end_station_id:
        ride.end_station_id = row.end_station_id

    if row.start_lat is not None:
        ride.start_lat = row.start_lat
    if row.start_lng is not None:
        ride.start_lng = row.start_lng
    if row.end_lat is not None:
        ride.end_lat = row.end_lat
    if row.end_lng is not None:
        ride.end_lng = row.end_lng


class RideUpsertLoader:
    """
    Stage station and ride upserts for one batch in the given session.

    Ensures:
    - One existence query per chunk of unique keys, not one per row
    - Stations are written before rides that reference them
    - Persisted values are never erased by absent incoming values

    The caller owns the transaction; nothing here commits.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def load_batch(self, rows: List[RideRow]) -> UpsertStats:
        stats = UpsertStats()
        if not rows:
            return stats

        candidates = build_station_candidates(rows)
        await self.upsert_stations(candidates, stats)

        # Station rows must exist before ride rows reference them
        await self.db.flush()

        await self.upsert_rides(rows, stats)
        return stats

    async def upsert_stations(self, candidates: Dict[str, StationCandidate], stats: UpsertStats) -> None:
        if not candidates:
            return

        existing = await fetch_existing(self.db, EntityType.STATION, candidates.keys())

        for candidate in candidates.values():
            station = existing.get(candidate.station_id)
            if station is None:
                self.db.add(Station(
                    station_id=candidate.station_id,
                    name=candidate.name,
                    lat=candidate.lat,
                    lng=candidate.lng,
                    first_seen_at=candidate.first_seen_at,
                    last_seen_at=candidate.last_seen_at
                ))
                stats.stations_inserted += 1
                continue

            merge_station_fields(
                station,
                candidate.name,
                candidate.lat,
                candidate.lng,
                candidate.first_seen_at,
                candidate.last_seen_at
            )
            stats.stations_updated += 1

    async def upsert_rides(self, rows: List[RideRow], stats: UpsertStats) -> None:
        existing = await fetch_existing(self.db, EntityType.RIDE, (row.ride_id for row in rows))

        for row in rows:
            ride = existing.get(row.ride_id)
            if ride is None:
                ride = Ride(ride_id=row.ride_id)
                self.db.add(ride)
                existing[row.ride_id] = ride
                stats.rides_inserted += 1
            else:
                stats.rides_updated += 1

            apply_ride_fields(ride, row)
