"""
Per-row outcome of decoding and validation.

Every CSV record produces exactly one outcome: an ``AcceptedRow`` carrying
the typed row, or a ``RejectedRow`` carrying the error classification and
diagnostics. Expected row problems travel as values, not exceptions.
"""

from typing import Literal, Optional, Union

from pydantic import BaseModel

from models.base import ImportErrorCode
from schemas.ride_row import RideRow


def truncate(text: str, max_length: int) -> str:
    return text if len(text) <= max_length else text[:max_length]


class AcceptedRow(BaseModel):
    kind: Literal["accepted"] = "accepted"
    row: RideRow
    row_number: int
    raw_line: str


class RejectedRow(BaseModel):
    """
    A row that will be written to the import error table and skipped.

    Attributes:
        code: Error classification
        row_number: 1-based physical line number in the source entry
        raw_line: Original record text, already truncated for storage
        ride_id: Ride id if one could be recovered
        message: Human-readable detail for logs
    """
    kind: Literal["rejected"] = "rejected"
    code: ImportErrorCode
    row_number: int
    raw_line: str
    ride_id: Optional[str] = None
    message: str = ""


RowOutcome = Union[AcceptedRow, RejectedRow]
