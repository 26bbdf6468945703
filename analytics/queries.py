"""
Read-only reporting queries over the loaded stations and rides.

Each query selects only the columns it needs in one statement, then
aggregates in pandas. Weekdays follow pandas numbering (Monday=0).
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import pandas as pd
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import MemberType
from models.ride import Ride
from models.station import Station
from schemas.stats import (
    DurationStats,
    HourlyStationRank,
    RouteDayDifference,
    StationBreakdown,
    StationPairFlow,
    StationShare,
    TimeSlot,
    TimeSlotExtremes,
)

MONDAY = 0
THURSDAY = 3
SATURDAY = 5
SUNDAY = 6

MEMBER_TYPE_VALUES = [m.value for m in MemberType]


async def _load_frame(db: AsyncSession, stmt, columns: Iterable[str]) -> pd.DataFrame:
    result = await db.execute(stmt)
    frame = pd.DataFrame(result.all(), columns=list(columns))
    if "member_type" in frame.columns and not frame.empty:
        frame["member_type"] = frame["member_type"].map(lambda m: MemberType(m).value)
    return frame


async def _station_names(db: AsyncSession) -> Dict[str, Optional[str]]:
    result = await db.execute(select(Station.station_id, Station.name))
    return {station_id: name for station_id, name in result.all()}


def _share(part: int, total: int) -> float:
    return 0.0 if total == 0 else part / total


async def _rank_by_share(
    db: AsyncSession,
    frame: pd.DataFrame,
    category: MemberType,
    min_rides: int,
    top_n: int
) -> List[StationShare]:
    if frame.empty:
        return []

    counts = (
        frame.assign(hit=frame["member_type"] == category.value)
        .groupby("start_station_id")["hit"]
        .agg(total="size", category="sum")
        .reset_index()
    )
    counts = counts[counts["total"] >= min_rides].assign(
        share=lambda c: c["category"] / c["total"]
    )
    counts = counts.sort_values(
        ["share", "total", "start_station_id"],
        ascending=[False, False, True]
    ).head(top_n)

    names = await _station_names(db)
    return [
        StationShare(
            station_id=rec.start_station_id,
            station_name=names.get(rec.start_station_id),
            total_rides=int(rec.total),
            category_rides=int(rec.category),
            share=float(rec.share)
        )
        for rec in counts.itertuples(index=False)
    ]


async def weekend_duration_stats(db: AsyncSession) -> List[DurationStats]:
    """Average and median ride duration on Saturdays and Sundays, per member type"""
    frame = await _load_frame(
        db,
        select(Ride.member_type, Ride.started_at, Ride.ended_at),
        ["member_type", "started_at", "ended_at"]
    )
    if frame.empty:
        return []

    started = pd.to_datetime(frame["started_at"])
    ended = pd.to_datetime(frame["ended_at"])
    frame["duration"] = (ended - started).dt.total_seconds()
    weekend = frame[(started.dt.dayofweek >= SATURDAY) & (frame["duration"] >= 0)]

    results = []
    for member_type in MemberType:
        durations = weekend.loc[weekend["member_type"] == member_type.value, "duration"]
        if durations.empty:
            continue
        results.append(DurationStats(
            member_type=member_type.value,
            ride_count=int(durations.count()),
            average_seconds=float(durations.mean()),
            median_seconds=float(durations.median())
        ))
    return results


async def tourist_stations(db: AsyncSession, min_rides: int = 200, top_n: int = 20) -> List[StationShare]:
    """Start stations with the highest casual share on weekends between 10:00 and 18:00"""
    frame = await _load_frame(
        db,
        select(Ride.start_station_id, Ride.member_type, Ride.started_at)
        .where(Ride.start_station_id.isnot(None)),
        ["start_station_id", "member_type", "started_at"]
    )
    if frame.empty:
        return []

    started = pd.to_datetime(frame["started_at"])
    window = frame[
        (started.dt.dayofweek >= SATURDAY)
        & (started.dt.hour >= 10)
        & (started.dt.hour < 18)
    ]
    return await _rank_by_share(db, window, MemberType.CASUAL, min_rides, top_n)


async def unilateral_station_pairs(
    db: AsyncSession,
    top_n: int = 20,
    min_total_trips: int = 50
) -> List[StationPairFlow]:
    """
    Station pairs where one direction dominates.

    Each undirected pair is reported once, dominant direction first.
    Round trips (same start and end station) are not pairs.
    """
    frame = await _load_frame(
        db,
        select(Ride.start_station_id, Ride.end_station_id)
        .where(Ride.start_station_id.isnot(None), Ride.end_station_id.isnot(None)),
        ["start_station_id", "end_station_id"]
    )
    if frame.empty:
        return []

    counts = frame.groupby(["start_station_id", "end_station_id"]).size().to_dict()

    seen = set()
    flows = []
    for a, b in counts:
        if a == b:
            continue
        pair = (a, b) if a <= b else (b, a)
        if pair in seen:
            continue
        seen.add(pair)

        ab = int(counts.get((a, b), 0))
        ba = int(counts.get((b, a), 0))
        total = ab + ba
        if total < min_total_trips:
            continue

        if ab >= ba:
            flows.append((a, b, ab, ba))
        else:
            flows.append((b, a, ba, ab))

    flows.sort(key=lambda f: (-(f[2] - f[3]), -(f[2] + f[3]), f[0], f[1]))

    names = await _station_names(db)
    return [
        StationPairFlow(
            from_station_id=src,
            from_station_name=names.get(src),
            to_station_id=dst,
            to_station_name=names.get(dst),
            trips_from_to=strong,
            trips_to_from=weak,
            net_flow=strong - weak,
            skew_from_to=_share(strong, strong + weak)
        )
        for src, dst, strong, weak in flows[:top_n]
    ]


async def top_stations_per_hour_on_mondays(
    db: AsyncSession,
    top_per_hour: int = 3,
    min_rides_per_hour_station: int = 1
) -> List[HourlyStationRank]:
    """Busiest start stations for every hour of the day on Mondays"""
    frame = await _load_frame(
        db,
        select(Ride.start_station_id, Ride.started_at).where(Ride.start_station_id.isnot(None)),
        ["start_station_id", "started_at"]
    )
    if frame.empty:
        return []

    started = pd.to_datetime(frame["started_at"])
    is_monday = started.dt.dayofweek == MONDAY
    monday = frame.loc[is_monday].assign(hour=started[is_monday].dt.hour)

    counts = monday.groupby(["hour", "start_station_id"]).size().reset_index(name="ride_count")
    counts = counts[counts["ride_count"] >= min_rides_per_hour_station]
    counts = counts.sort_values(
        ["hour", "ride_count", "start_station_id"],
        ascending=[True, False, True]
    )

    names = await _station_names(db)
    results = []
    for hour, group in counts.groupby("hour", sort=True):
        for rank, rec in enumerate(group.head(top_per_hour).itertuples(index=False), start=1):
            results.append(HourlyStationRank(
                hour=int(hour),
                rank=rank,
                station_id=rec.start_station_id,
                station_name=names.get(rec.start_station_id),
                ride_count=int(rec.ride_count)
            ))
    return results


async def member_stations_on_thursdays(
    db: AsyncSession,
    top_n: int = 20,
    min_rides: int = 200
) -> List[StationShare]:
    """Start stations with the highest member share on Thursdays"""
    frame = await _load_frame(
        db,
        select(Ride.start_station_id, Ride.member_type, Ride.started_at)
        .where(Ride.start_station_id.isnot(None)),
        ["start_station_id", "member_type", "started_at"]
    )
    if frame.empty:
        return []

    started = pd.to_datetime(frame["started_at"])
    thursday = frame[started.dt.dayofweek == THURSDAY]
    return await _rank_by_share(db, thursday, MemberType.MEMBER, min_rides, top_n)


async def top_stations_overall(
    db: AsyncSession,
    top_n: int = 20,
    min_rides: int = 1
) -> List[StationBreakdown]:
    """Busiest start stations with member / casual / unknown breakdown"""
    frame = await _load_frame(
        db,
        select(Ride.start_station_id, Ride.member_type).where(Ride.start_station_id.isnot(None)),
        ["start_station_id", "member_type"]
    )
    if frame.empty:
        return []

    table = pd.crosstab(frame["start_station_id"], frame["member_type"]).reindex(
        columns=MEMBER_TYPE_VALUES, fill_value=0
    )
    table["total"] = table[MEMBER_TYPE_VALUES].sum(axis=1)
    table = table[table["total"] >= min_rides].reset_index()
    table = table.sort_values(
        ["total", MemberType.MEMBER.value, "start_station_id"],
        ascending=[False, False, True]
    ).head(top_n)

    names = await _station_names(db)
    results = []
    for _, rec in table.iterrows():
        total = int(rec["total"])
        members = int(rec[MemberType.MEMBER.value])
        casual = int(rec[MemberType.CASUAL.value])
        results.append(StationBreakdown(
            station_id=rec["start_station_id"],
            station_name=names.get(rec["start_station_id"]),
            total_rides=total,
            member_rides=members,
            casual_rides=casual,
            unknown_rides=int(rec[MemberType.UNKNOWN.value]),
            member_share=_share(members, total),
            casual_share=_share(casual, total)
        ))
    return results


async def route_with_biggest_member_monday_sunday_difference(
    db: AsyncSession,
    min_total_monday_sunday_members: int = 50
) -> Optional[RouteDayDifference]:
    """Member route whose Monday and Sunday ride counts differ the most"""
    frame = await _load_frame(
        db,
        select(Ride.start_station_id, Ride.end_station_id, Ride.started_at).where(
            Ride.member_type == MemberType.MEMBER,
            Ride.start_station_id.isnot(None),
            Ride.end_station_id.isnot(None)
        ),
        ["start_station_id", "end_station_id", "started_at"]
    )
    if frame.empty:
        return None

    weekday = pd.to_datetime(frame["started_at"]).dt.dayofweek
    frame = frame.assign(
        monday=(weekday == MONDAY).astype(int),
        sunday=(weekday == SUNDAY).astype(int)
    )
    frame = frame[(frame["monday"] + frame["sunday"]) > 0]
    if frame.empty:
        return None

    routes = frame.groupby(["start_station_id", "end_station_id"])[["monday", "sunday"]].sum().reset_index()
    routes["total"] = routes["monday"] + routes["sunday"]
    routes["net"] = routes["monday"] - routes["sunday"]
    routes["abs"] = routes["net"].abs()
    routes = routes[routes["total"] >= min_total_monday_sunday_members]
    if routes.empty:
        return None

    best = routes.sort_values(
        ["abs", "total", "start_station_id", "end_station_id"],
        ascending=[False, False, True, True]
    ).iloc[0]

    names = await _station_names(db)
    return RouteDayDifference(
        start_station_id=best["start_station_id"],
        start_station_name=names.get(best["start_station_id"]),
        end_station_id=best["end_station_id"],
        end_station_name=names.get(best["end_station_id"]),
        member_monday_count=int(best["monday"]),
        member_sunday_count=int(best["sunday"]),
        net_difference=int(best["net"]),
        abs_difference=int(best["abs"]),
        total_member_count=int(best["total"])
    )


async def member_and_casual_time_slots(
    db: AsyncSession,
    top_n: int = 5,
    min_total_rides_per_slot: int = 500
) -> TimeSlotExtremes:
    """Day-of-week + hour slots with the most member-heavy and most casual-heavy ridership"""
    frame = await _load_frame(
        db,
        select(Ride.member_type, Ride.started_at),
        ["member_type", "started_at"]
    )
    if frame.empty:
        return TimeSlotExtremes()

    started = pd.to_datetime(frame["started_at"])
    frame = frame.assign(
        weekday=started.dt.dayofweek,
        day_name=started.dt.day_name(),
        hour=started.dt.hour
    )

    table = pd.crosstab(
        [frame["weekday"], frame["day_name"], frame["hour"]],
        frame["member_type"]
    ).reindex(columns=MEMBER_TYPE_VALUES, fill_value=0)
    table["total"] = table[MEMBER_TYPE_VALUES].sum(axis=1)
    table = table[table["total"] >= min_total_rides_per_slot].reset_index()
    if table.empty:
        return TimeSlotExtremes()

    table["member_share"] = table[MemberType.MEMBER.value] / table["total"]
    table["casual_share"] = table[MemberType.CASUAL.value] / table["total"]

    def to_slots(ordered: pd.DataFrame) -> List[TimeSlot]:
        return [
            TimeSlot(
                day_of_week=rec["day_name"],
                hour=int(rec["hour"]),
                total_rides=int(rec["total"]),
                member_rides=int(rec[MemberType.MEMBER.value]),
                casual_rides=int(rec[MemberType.CASUAL.value]),
                unknown_rides=int(rec[MemberType.UNKNOWN.value]),
                member_share=float(rec["member_share"]),
                casual_share=float(rec["casual_share"])
            )
            for _, rec in ordered.head(top_n).iterrows()
        ]

    most_member = table.sort_values(
        ["member_share", "total", "weekday", "hour"],
        ascending=[False, False, True, True]
    )
    most_casual = table.sort_values(
        ["member_share", "total", "weekday", "hour"],
        ascending=[True, False, True, True]
    )
    return TimeSlotExtremes(
        most_member_heavy=to_slots(most_member),
        most_casual_heavy=to_slots(most_casual)
    )


@dataclass(frozen=True)
class ReportQuery:
    number: int
    title: str
    run: Callable[[AsyncSession, int, int], Awaitable[Any]]


QUERY_REGISTRY: Dict[int, ReportQuery] = {
    1: ReportQuery(
        1, "Weekend ride duration (average and median) by member type",
        lambda db, min_rides, top_n: weekend_duration_stats(db)
    ),
    2: ReportQuery(
        2, "Tourist stations: highest casual share on weekends 10:00-18:00",
        lambda db, min_rides, top_n: tourist_stations(db, min_rides=min_rides, top_n=top_n)
    ),
    3: ReportQuery(
        3, "Unilateral station pairs: one direction dominates",
        lambda db, min_rides, top_n: unilateral_station_pairs(db, top_n=top_n)
    ),
    4: ReportQuery(
        4, "Top 3 start stations for every hour on Mondays",
        lambda db, min_rides, top_n: top_stations_per_hour_on_mondays(db)
    ),
    5: ReportQuery(
        5, "Member-heavy start stations on Thursdays",
        lambda db, min_rides, top_n: member_stations_on_thursdays(db, top_n=top_n, min_rides=min_rides)
    ),
    6: ReportQuery(
        6, "Busiest start stations with member / casual / unknown breakdown",
        lambda db, min_rides, top_n: top_stations_overall(db, top_n=top_n, min_rides=min_rides)
    ),
    7: ReportQuery(
        7, "Member route with the biggest Monday vs Sunday difference",
        lambda db, min_rides, top_n: route_with_biggest_member_monday_sunday_difference(db)
    ),
    8: ReportQuery(
        8, "Most member-heavy and casual-heavy day/hour slots",
        lambda db, min_rides, top_n: member_and_casual_time_slots(db)
    ),
}
