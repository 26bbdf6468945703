"""
Domain rules applied to decoded ride rows
"""

from models.base import ImportErrorCode
from schemas.outcome import AcceptedRow, RejectedRow, RowOutcome, truncate


class RideRowValidator:
    """
    Classify a decoded row as acceptable or rejected.

    Rules:
    - ride_id must be non-empty after normalization
    - ended_at must not be earlier than started_at (equal is a valid,
      zero-duration ride)

    Pure and stateless; never touches storage.
    """

    def __init__(self, raw_line_max_length: int = 2000):
        self.raw_line_max_length = raw_line_max_length

    def validate(self, outcome: RowOutcome) -> RowOutcome:
        if isinstance(outcome, RejectedRow):
            return outcome

        row = outcome.row

        if not row.ride_id:
            return self._reject(outcome, ImportErrorCode.MISSING_IDENTIFIER, "ride_id is empty")

        if row.ended_at < row.started_at:
            return self._reject(
                outcome,
                ImportErrorCode.END_BEFORE_START,
                f"ended_at {row.ended_at} is before started_at {row.started_at}",
                ride_id=row.ride_id
            )

        return outcome

    def _reject(self, outcome: AcceptedRow, code: ImportErrorCode, message: str, ride_id=None) -> RejectedRow:
        return RejectedRow(
            code=code,
            row_number=outcome.row_number,
            raw_line=truncate(outcome.raw_line, self.raw_line_max_length),
            ride_id=ride_id,
            message=message
        )
