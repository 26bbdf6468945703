"""
Decode CSV ride records into normalized RideRow models with Pydantic validation
"""

import csv
from typing import Dict, Iterator, List, Optional, TextIO, Tuple

from pydantic import ValidationError

from core.exceptions import CSVExtractionError, RowDecodeError
from models.base import ImportErrorCode
from schemas.outcome import AcceptedRow, RejectedRow, RowOutcome, truncate
from schemas.ride_row import RideRow, TIMESTAMP_FIELDS, null_if_blank
import logging

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("ride_id", "started_at", "ended_at")

KNOWN_COLUMNS = tuple(RideRow.model_fields)


class _RecordTap:
    """
    Line iterator handed to ``csv.reader`` that remembers the physical lines
    making up the current record, so rejected rows keep their raw text.
    """

    def __init__(self, stream: TextIO):
        self._lines = iter(stream)
        self._pending: List[str] = []
        self.lines_read = 0

    def __iter__(self):
        return self

    def __next__(self) -> str:
        line = next(self._lines)
        self.lines_read += 1
        self._pending.append(line)
        return line

    def take(self) -> Tuple[int, str]:
        """Return (first line number, raw text) of the consumed record"""
        first_line = self.lines_read - len(self._pending) + 1
        text = "".join(self._pending).rstrip("\r\n")
        self._pending.clear()
        return first_line, text


def _has_undecodable_bytes(text: str) -> bool:
    return any("\udc80" <= ch <= "\udcff" for ch in text)


def _printable(text: str) -> str:
    """Turn escaped undecodable bytes into replacement characters for storage"""
    if not _has_undecodable_bytes(text):
        return text
    return text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def normalize_header(name: str) -> str:
    return name.strip().lower().replace(" ", "_")


class RideRowDecoder:
    """
    Decode header-mapped CSV records into typed rows.

    Handles:
    - Header name mapping (reordered and extra columns are fine)
    - Trimming and blank-to-None normalization
    - Timestamp and coordinate parsing
    - Structural failures (field count, csv errors, bad encoding)

    Each non-blank record produces exactly one AcceptedRow or RejectedRow.
    """

    def __init__(self, source_file: str, raw_line_max_length: int = 2000):
        self.source_file = source_file
        self.raw_line_max_length = raw_line_max_length
        self.header: Optional[List[str]] = None
        self.missing_columns: List[str] = []

    def decode(self, stream: TextIO) -> Iterator[RowOutcome]:
        """
        Iterate over the outcomes of every data record in the stream.

        Raises:
            CSVExtractionError: If the header record itself cannot be parsed
        """
        tap = _RecordTap(stream)
        reader = csv.reader(tap)

        while True:
            try:
                fields = next(reader)
            except StopIteration:
                return
            except csv.Error as e:
                row_number, raw = tap.take()
                if self.header is None:
                    raise CSVExtractionError(
                        "Unreadable CSV header",
                        context={"entry_name": self.source_file, "line": row_number},
                        original_exception=e
                    )
                yield self._reject(ImportErrorCode.MALFORMED_ROW, row_number, raw, f"csv error: {e}")
                continue

            row_number, raw = tap.take()

            if self._is_blank(fields):
                continue

            if self.header is None:
                self._set_header(fields)
                continue

            yield self.decode_record(fields, row_number, raw)

    def decode_record(self, fields: List[str], row_number: int, raw: str) -> RowOutcome:
        """Decode one already-split record against the current header"""
        try:
            row = self._build_row(fields, raw)
        except RowDecodeError as e:
            return self._reject(e.code, row_number, raw, e.message, ride_id=e.ride_id)

        return AcceptedRow(row=row, row_number=row_number, raw_line=raw)

    def _set_header(self, fields: List[str]) -> None:
        header = [normalize_header(name) for name in fields]
        # Rows are still decoded; absent required fields reject each row
        self.missing_columns = [col for col in REQUIRED_COLUMNS if col not in header]
        if self.missing_columns:
            logger.warning(
                f"{self.source_file}: header is missing required columns "
                f"{self.missing_columns}, every row will be rejected"
            )
        self.header = header
        logger.debug(f"{self.source_file}: header {header}")

    def _build_row(self, fields: List[str], raw: str) -> RideRow:
        if _has_undecodable_bytes(raw):
            raise RowDecodeError(ImportErrorCode.MALFORMED_ROW, "record is not valid UTF-8")

        if len(fields) != len(self.header):
            raise RowDecodeError(
                ImportErrorCode.MALFORMED_ROW,
                f"expected {len(self.header)} fields, found {len(fields)}"
            )

        record: Dict[str, str] = {}
        for name, value in zip(self.header, fields):
            if name in KNOWN_COLUMNS:
                record[name] = value

        try:
            return RideRow.model_validate(record)
        except ValidationError as e:
            bad_fields = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
            ride_id = null_if_blank(record.get("ride_id"))
            if bad_fields & set(TIMESTAMP_FIELDS):
                raise RowDecodeError(
                    ImportErrorCode.TIMESTAMP_PARSE_FAILURE,
                    f"unparseable timestamp in {sorted(bad_fields & set(TIMESTAMP_FIELDS))}",
                    ride_id=ride_id
                )
            raise RowDecodeError(
                ImportErrorCode.MALFORMED_ROW,
                f"invalid fields {sorted(bad_fields)}",
                ride_id=ride_id
            )

    def _reject(
        self,
        code: ImportErrorCode,
        row_number: int,
        raw: str,
        message: str,
        ride_id: Optional[str] = None
    ) -> RejectedRow:
        return RejectedRow(
            code=code,
            row_number=row_number,
            raw_line=truncate(_printable(raw), self.raw_line_max_length),
            ride_id=ride_id,
            message=message
        )

    @staticmethod
    def _is_blank(fields: List[str]) -> bool:
        return not fields or (len(fields) == 1 and not fields[0].strip())
