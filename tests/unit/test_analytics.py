"""
Unit tests for the reporting queries
"""

from datetime import datetime, timedelta

import pytest

from analytics.queries import (
    QUERY_REGISTRY,
    member_and_casual_time_slots,
    member_stations_on_thursdays,
    route_with_biggest_member_monday_sunday_difference,
    top_stations_overall,
    top_stations_per_hour_on_mondays,
    tourist_stations,
    unilateral_station_pairs,
    weekend_duration_stats,
)
from models.base import MemberType
from models.ride import Ride
from models.station import Station
from schemas.stats import TimeSlotExtremes

MONDAY = datetime(2024, 7, 1)
THURSDAY = datetime(2024, 7, 4)
SATURDAY = datetime(2024, 7, 6)
SUNDAY = datetime(2024, 7, 7)

STATION_NAMES = {"A": "Alpha", "B": "Bravo", "C": "Charlie", "D": "Delta"}


class RideSeeder:
    """Insert rides (and their stations) directly"""

    def __init__(self, session):
        self.session = session
        self.count = 0

    async def add(self, start, minutes=10, start_station="A", end_station=None, member=MemberType.MEMBER, times=1):
        for _ in range(times):
            self.count += 1
            self.session.add(Ride(
                ride_id=f"r{self.count}",
                started_at=start,
                ended_at=start + timedelta(minutes=minutes),
                start_station_id=start_station,
                end_station_id=end_station,
                member_type=member
            ))

    async def commit(self):
        for station_id, name in STATION_NAMES.items():
            self.session.add(Station(
                station_id=station_id,
                name=name,
                first_seen_at=MONDAY,
                last_seen_at=SUNDAY
            ))
        await self.session.commit()


@pytest.fixture
def seeder(db_session):
    return RideSeeder(db_session)


class TestEmptyDatabase:
    """Every query handles an empty rides table"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("number", sorted(QUERY_REGISTRY))
    async def test_registry_query_on_empty_database(self, db_session, number):
        result = await QUERY_REGISTRY[number].run(db_session, 200, 20)

        assert result in ([], None, TimeSlotExtremes())

    def test_registry_numbers_and_titles(self):
        assert sorted(QUERY_REGISTRY) == list(range(1, 9))
        assert all(q.number == n and q.title for n, q in QUERY_REGISTRY.items())


class TestWeekendDurationStats:

    @pytest.mark.asyncio
    async def test_average_and_median_per_member_type(self, db_session, seeder):
        await seeder.add(SATURDAY.replace(hour=9), minutes=10)
        await seeder.add(SATURDAY.replace(hour=10), minutes=20)
        await seeder.add(SUNDAY.replace(hour=11), minutes=60)
        await seeder.add(SUNDAY.replace(hour=12), minutes=5, member=MemberType.CASUAL)
        # Weekday rides are ignored
        await seeder.add(MONDAY.replace(hour=8), minutes=300)
        await seeder.commit()

        stats = await weekend_duration_stats(db_session)

        assert [s.member_type for s in stats] == ["Member", "Casual"]
        member, casual = stats
        assert member.ride_count == 3
        assert member.average_seconds == pytest.approx(30 * 60)
        assert member.median_seconds == pytest.approx(20 * 60)
        assert casual.ride_count == 1
        assert casual.median_seconds == pytest.approx(5 * 60)


class TestStationShareQueries:

    @pytest.mark.asyncio
    async def test_tourist_stations_rank_by_casual_share(self, db_session, seeder):
        await seeder.add(SATURDAY.replace(hour=11), start_station="A", member=MemberType.CASUAL, times=2)
        await seeder.add(SATURDAY.replace(hour=12), start_station="A", member=MemberType.MEMBER)
        await seeder.add(SUNDAY.replace(hour=17, minute=59), start_station="B", member=MemberType.CASUAL, times=2)
        await seeder.add(SUNDAY.replace(hour=14), start_station="C", member=MemberType.CASUAL)
        # Outside the weekend window
        await seeder.add(SUNDAY.replace(hour=9), start_station="A", member=MemberType.MEMBER, times=5)
        await seeder.add(SUNDAY.replace(hour=18), start_station="A", member=MemberType.MEMBER, times=5)
        await seeder.add(MONDAY.replace(hour=12), start_station="A", member=MemberType.MEMBER, times=5)
        await seeder.commit()

        result = await tourist_stations(db_session, min_rides=2, top_n=10)

        assert [(r.station_id, r.station_name, r.total_rides, r.category_rides) for r in result] == [
            ("B", "Bravo", 2, 2),
            ("A", "Alpha", 3, 2),
        ]
        assert result[1].share == pytest.approx(2 / 3)

    @pytest.mark.asyncio
    async def test_thursday_member_share_respects_top_n(self, db_session, seeder):
        await seeder.add(THURSDAY.replace(hour=8), start_station="A", member=MemberType.MEMBER, times=3)
        await seeder.add(THURSDAY.replace(hour=8), start_station="B", member=MemberType.MEMBER, times=1)
        await seeder.add(THURSDAY.replace(hour=8), start_station="B", member=MemberType.CASUAL, times=1)
        await seeder.add(THURSDAY.replace(hour=8), start_station="C", member=MemberType.UNKNOWN, times=2)
        await seeder.add(MONDAY.replace(hour=8), start_station="C", member=MemberType.MEMBER, times=9)
        await seeder.commit()

        result = await member_stations_on_thursdays(db_session, top_n=2, min_rides=1)

        assert [(r.station_id, r.share) for r in result] == [("A", 1.0), ("B", 0.5)]


class TestUnilateralStationPairs:

    @pytest.mark.asyncio
    async def test_dominant_direction_first(self, db_session, seeder):
        await seeder.add(MONDAY, start_station="A", end_station="B", times=3)
        await seeder.add(MONDAY, start_station="B", end_station="A", times=1)
        await seeder.add(MONDAY, start_station="C", end_station="D", times=1)
        await seeder.add(MONDAY, start_station="D", end_station="C", times=4)
        # Round trips are not pairs
        await seeder.add(MONDAY, start_station="A", end_station="A", times=10)
        await seeder.commit()

        result = await unilateral_station_pairs(db_session, top_n=10, min_total_trips=4)

        assert [(r.from_station_id, r.to_station_id, r.net_flow) for r in result] == [
            ("D", "C", 3),
            ("A", "B", 2),
        ]
        assert result[1].trips_from_to == 3
        assert result[1].trips_to_from == 1
        assert result[1].skew_from_to == pytest.approx(0.75)
        assert result[0].from_station_name == "Delta"

    @pytest.mark.asyncio
    async def test_pairs_below_threshold_are_skipped(self, db_session, seeder):
        await seeder.add(MONDAY, start_station="A", end_station="B", times=3)
        await seeder.commit()

        assert await unilateral_station_pairs(db_session, min_total_trips=50) == []


class TestTopStationsPerHourOnMondays:

    @pytest.mark.asyncio
    async def test_three_per_hour_ties_by_station_id(self, db_session, seeder):
        await seeder.add(MONDAY.replace(hour=8), start_station="A", times=3)
        await seeder.add(MONDAY.replace(hour=8, minute=30), start_station="C", times=2)
        await seeder.add(MONDAY.replace(hour=8, minute=45), start_station="B", times=2)
        await seeder.add(MONDAY.replace(hour=8), start_station="D", times=1)
        await seeder.add(MONDAY.replace(hour=9), start_station="D", times=1)
        await seeder.add(THURSDAY.replace(hour=8), start_station="D", times=10)
        await seeder.commit()

        result = await top_stations_per_hour_on_mondays(db_session)

        assert [(r.hour, r.rank, r.station_id, r.ride_count) for r in result] == [
            (8, 1, "A", 3),
            (8, 2, "B", 2),
            (8, 3, "C", 2),
            (9, 1, "D", 1),
        ]


class TestTopStationsOverall:

    @pytest.mark.asyncio
    async def test_breakdown_by_member_type(self, db_session, seeder):
        await seeder.add(MONDAY, start_station="A", member=MemberType.MEMBER, times=2)
        await seeder.add(MONDAY, start_station="A", member=MemberType.CASUAL, times=1)
        await seeder.add(MONDAY, start_station="A", member=MemberType.UNKNOWN, times=1)
        await seeder.add(MONDAY, start_station="B", member=MemberType.CASUAL, times=4)
        await seeder.add(MONDAY, start_station="C", member=MemberType.MEMBER, times=1)
        await seeder.commit()

        result = await top_stations_overall(db_session, top_n=10, min_rides=2)

        assert [r.station_id for r in result] == ["A", "B"]
        alpha = result[0]
        assert (alpha.total_rides, alpha.member_rides, alpha.casual_rides, alpha.unknown_rides) == (4, 2, 1, 1)
        assert alpha.member_share == pytest.approx(0.5)
        assert result[1].casual_share == pytest.approx(1.0)


class TestMondaySundayRoute:

    @pytest.mark.asyncio
    async def test_biggest_member_difference(self, db_session, seeder):
        await seeder.add(MONDAY.replace(hour=8), start_station="A", end_station="B", times=3)
        await seeder.add(SUNDAY.replace(hour=8), start_station="A", end_station="B", times=1)
        await seeder.add(SUNDAY.replace(hour=8), start_station="B", end_station="A", times=2)
        # Casual riders do not count
        await seeder.add(SUNDAY.replace(hour=8), start_station="C", end_station="D", member=MemberType.CASUAL, times=9)
        await seeder.commit()

        result = await route_with_biggest_member_monday_sunday_difference(db_session, min_total_monday_sunday_members=2)

        assert (result.start_station_id, result.end_station_id) == ("A", "B")
        assert result.member_monday_count == 3
        assert result.member_sunday_count == 1
        assert result.net_difference == 2
        assert result.abs_difference == 2
        assert result.total_member_count == 4
        assert result.start_station_name == "Alpha"

    @pytest.mark.asyncio
    async def test_none_when_nothing_qualifies(self, db_session, seeder):
        await seeder.add(MONDAY.replace(hour=8), start_station="A", end_station="B", times=3)
        await seeder.commit()

        assert await route_with_biggest_member_monday_sunday_difference(db_session) is None


class TestTimeSlots:

    @pytest.mark.asyncio
    async def test_member_and_casual_heavy_slots(self, db_session, seeder):
        await seeder.add(MONDAY.replace(hour=8), member=MemberType.MEMBER, times=3)
        await seeder.add(MONDAY.replace(hour=8, minute=30), member=MemberType.CASUAL, times=1)
        await seeder.add(SATURDAY.replace(hour=14), member=MemberType.CASUAL, times=3)
        await seeder.add(SATURDAY.replace(hour=14), member=MemberType.MEMBER, times=1)
        await seeder.add(SUNDAY.replace(hour=3), member=MemberType.CASUAL, times=1)
        await seeder.commit()

        result = await member_and_casual_time_slots(db_session, top_n=1, min_total_rides_per_slot=2)

        assert len(result.most_member_heavy) == 1
        top_member = result.most_member_heavy[0]
        assert (top_member.day_of_week, top_member.hour, top_member.total_rides) == ("Monday", 8, 4)
        assert top_member.member_share == pytest.approx(0.75)

        top_casual = result.most_casual_heavy[0]
        assert (top_casual.day_of_week, top_casual.hour) == ("Saturday", 14)
        assert top_casual.casual_share == pytest.approx(0.75)
