"""
Pydantic schema for one decoded, normalized CSV ride record
"""

from datetime import datetime, timezone
from typing import Any, Optional

import pandas as pd
from pydantic import BaseModel, field_validator

from models.base import MemberType

# Tried in order before the permissive fallback
TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
)

TEXT_FIELDS = (
    "rideable_type",
    "start_station_name",
    "start_station_id",
    "end_station_name",
    "end_station_id",
    "member_casual",
)

COORDINATE_FIELDS = ("start_lat", "start_lng", "end_lat", "end_lng")

TIMESTAMP_FIELDS = ("started_at", "ended_at")


def null_if_blank(value: Any) -> Optional[str]:
    """Trim a text value; empty or whitespace-only becomes None"""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a required timestamp.

    Known layouts are tried first, then pandas' permissive parser.
    Text without any digit is rejected up front.
    Offset-aware values are converted to naive UTC.

    Raises:
        ValueError: empty or unparseable value
    """
    if isinstance(value, datetime):
        return _to_naive_utc(value)

    text = null_if_blank(value)
    if text is None:
        raise ValueError("empty timestamp")

    # Relative words such as "now" or "today" are not timestamps
    if not any(ch.isdigit() for ch in text):
        raise ValueError(f"unparseable timestamp {text!r}")

    for fmt in TIMESTAMP_FORMATS:
        try:
            return _to_naive_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue

    try:
        parsed = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"unparseable timestamp {text!r}") from e

    if pd.isna(parsed):
        raise ValueError(f"unparseable timestamp {text!r}")
    return _to_naive_utc(parsed.to_pydatetime())


def parse_coordinate(value: Any) -> Optional[float]:
    """Safely parse a coordinate; anything unparseable is treated as absent"""
    text = null_if_blank(value)
    if text is None:
        return None
    try:
        number = float(text)
    except (ValueError, TypeError):
        return None
    # nan/inf parse as floats but are not coordinates
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


class RideRow(BaseModel):
    """
    Typed ride row with nullable optional fields.

    Ensures:
    - Text fields are trimmed; blank values become None
    - ride_id is trimmed and kept as "" when absent, so the validator
      can classify it
    - Timestamps are parsed (failure is a row-level error)
    - Coordinates that do not parse are None
    """

    ride_id: str = ""
    rideable_type: Optional[str] = None

    started_at: datetime
    ended_at: datetime

    start_station_name: Optional[str] = None
    start_station_id: Optional[str] = None
    end_station_name: Optional[str] = None
    end_station_id: Optional[str] = None

    start_lat: Optional[float] = None
    start_lng: Optional[float] = None
    end_lat: Optional[float] = None
    end_lng: Optional[float] = None

    member_casual: Optional[str] = None

    @field_validator("ride_id", mode="before")
    @classmethod
    def clean_ride_id(cls, v):
        return null_if_blank(v) or ""

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def clean_text(cls, v):
        return null_if_blank(v)

    @field_validator(*TIMESTAMP_FIELDS, mode="before")
    @classmethod
    def clean_timestamp(cls, v):
        return parse_timestamp(v)

    @field_validator(*COORDINATE_FIELDS, mode="before")
    @classmethod
    def clean_coordinate(cls, v):
        return parse_coordinate(v)

    @property
    def member_type(self) -> MemberType:
        return MemberType.from_csv(self.member_casual)
