"""
Fold the station references of a ride batch into merged station candidates
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Optional

from schemas.ride_row import RideRow


@dataclass
class StationCandidate:
    station_id: str
    name: Optional[str]
    lat: Optional[float]
    lng: Optional[float]
    first_seen_at: datetime
    last_seen_at: datetime


def merge_station_fields(
    target,
    name: Optional[str],
    lat: Optional[float],
    lng: Optional[float],
    first_seen_at: datetime,
    last_seen_at: datetime
) -> None:
    """
    Apply an observation to a candidate or a persisted Station in place.

    Non-empty name and present coordinates overwrite; first/last-seen only
    widen.
    """
    if name:
        target.name = name
    if lat is not None:
        target.lat = lat
    if lng is not None:
        target.lng = lng
    if first_seen_at < target.first_seen_at:
        target.first_seen_at = first_seen_at
    if last_seen_at > target.last_seen_at:
        target.last_seen_at = last_seen_at


def build_station_candidates(rows: Iterable[RideRow]) -> Dict[str, StationCandidate]:
    """
    Merge every start and end station reference, in row order.

    The start side is observed at ``started_at`` and the end side at
    ``ended_at``. Pure: no storage access.
    """
    candidates: Dict[str, StationCandidate] = {}

    def observe(station_id, name, lat, lng, seen_at):
        existing = candidates.get(station_id)
        if existing is None:
            candidates[station_id] = StationCandidate(
                station_id=station_id,
                name=name,
                lat=lat,
                lng=lng,
                first_seen_at=seen_at,
                last_seen_at=seen_at
            )
            return
        merge_station_fields(existing, name, lat, lng, seen_at, seen_at)

    for row in rows:
        if row.start_station_id:
            observe(row.start_station_id, row.start_station_name, row.start_lat, row.start_lng, row.started_at)
        if row.end_station_id:
            observe(row.end_station_id, row.end_station_name, row.end_lat, row.end_lng, row.ended_at)

    return candidates
