"""
Pydantic result models for the reporting queries
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class DurationStats(BaseModel):
    """Q01: weekend ride duration per member type"""
    member_type: str
    ride_count: int
    average_seconds: float
    median_seconds: float


class StationShare(BaseModel):
    """Q02 / Q05: stations ranked by the share of one rider category"""
    station_id: str
    station_name: Optional[str] = None
    total_rides: int
    category_rides: int
    share: float = Field(..., ge=0, le=1)


class StationPairFlow(BaseModel):
    """Q03: a station pair with its dominant direction first"""
    from_station_id: str
    from_station_name: Optional[str] = None
    to_station_id: str
    to_station_name: Optional[str] = None
    trips_from_to: int
    trips_to_from: int
    net_flow: int
    skew_from_to: float


class HourlyStationRank(BaseModel):
    """Q04: one ranked start station within an hour of the day"""
    hour: int = Field(..., ge=0, le=23)
    rank: int = Field(..., ge=1)
    station_id: str
    station_name: Optional[str] = None
    ride_count: int


class StationBreakdown(BaseModel):
    """Q06: start station totals split by rider category"""
    station_id: str
    station_name: Optional[str] = None
    total_rides: int
    member_rides: int
    casual_rides: int
    unknown_rides: int
    member_share: float
    casual_share: float


class RouteDayDifference(BaseModel):
    """Q07: member route with the biggest Monday vs Sunday gap"""
    start_station_id: str
    start_station_name: Optional[str] = None
    end_station_id: str
    end_station_name: Optional[str] = None
    member_monday_count: int
    member_sunday_count: int
    net_difference: int
    abs_difference: int
    total_member_count: int


class TimeSlot(BaseModel):
    day_of_week: str
    hour: int = Field(..., ge=0, le=23)
    total_rides: int
    member_rides: int
    casual_rides: int
    unknown_rides: int
    member_share: float
    casual_share: float


class TimeSlotExtremes(BaseModel):
    """Q08: most member-heavy and most casual-heavy weekly time slots"""
    most_member_heavy: List[TimeSlot] = Field(default_factory=list)
    most_casual_heavy: List[TimeSlot] = Field(default_factory=list)
