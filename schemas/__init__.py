"""
Pydantic schemas for data validation and serialization.

Schemas:
    ride_row: One decoded, normalized CSV ride record
    outcome: Accepted / rejected row outcomes produced by decoding and validation
    stats: Result models of the reporting queries
    api: API endpoint response schemas

Usage:
    from schemas.ride_row import RideRow
    from schemas.outcome import AcceptedRow, RejectedRow

Example:
    row = RideRow(
        ride_id="ABC123",
        started_at="2024-07-01 08:00:00",
        ended_at="2024-07-01 08:10:00",
        start_station_id="6140.05",
        start_lat="40.7",
        member_casual="member"
    )

    # Timestamps and coordinates are parsed; blanks become None
    assert row.started_at.hour == 8
    assert row.member_type == MemberType.MEMBER
"""

from schemas.api import HealthCheckResponse, ImportErrorPage, QueryResultResponse
from schemas.outcome import AcceptedRow, RejectedRow, RowOutcome
from schemas.ride_row import RideRow

__all__ = [
    "RideRow",
    "AcceptedRow",
    "RejectedRow",
    "RowOutcome",
    "HealthCheckResponse",
    "ImportErrorPage",
    "QueryResultResponse",
]
