"""
Unit tests for CSV record decoding and normalization
"""

import io
from datetime import datetime

import pytest

from ingestion.transformers.normalizer import RideRowDecoder, normalize_header
from models.base import ImportErrorCode, MemberType
from schemas.outcome import AcceptedRow, RejectedRow


def decode_text(text: str, max_length: int = 2000):
    decoder = RideRowDecoder("rides.csv", max_length)
    return list(decoder.decode(io.StringIO(text, newline="")))


def decode_bytes(data: bytes):
    stream = io.TextIOWrapper(
        io.BytesIO(data), encoding="utf-8-sig", errors="surrogateescape", newline=""
    )
    return list(RideRowDecoder("rides.csv").decode(stream))


class TestHeaderMapping:
    """Fields are resolved by header name, not position"""

    def test_reordered_and_extra_columns(self):
        text = (
            "member_casual,extra,ended_at,ride_id,started_at,start_station_id\n"
            "casual,ignored,2024-07-01 08:10:00,r1,2024-07-01 08:00:00,S9\n"
        )

        outcomes = decode_text(text)

        assert len(outcomes) == 1
        row = outcomes[0].row
        assert row.ride_id == "r1"
        assert row.start_station_id == "S9"
        assert row.member_type == MemberType.CASUAL
        assert row.rideable_type is None

    def test_header_names_are_normalized(self):
        assert normalize_header("  Ride ID ") == "ride_id"
        assert normalize_header("STARTED_AT") == "started_at"

    def test_missing_required_column_rejects_each_row(self):
        text = "ride_id,started_at\nr1,2024-07-01 08:00:00\nr2,2024-07-01 09:00:00\n"
        decoder = RideRowDecoder("rides.csv")

        outcomes = list(decoder.decode(io.StringIO(text, newline="")))

        assert decoder.missing_columns == ["ended_at"]
        assert [o.code for o in outcomes] == [ImportErrorCode.TIMESTAMP_PARSE_FAILURE] * 2
        assert [o.ride_id for o in outcomes] == ["r1", "r2"]

    def test_header_only_file_yields_nothing(self, make_csv):
        assert decode_text(make_csv()) == []


class TestFieldNormalization:
    """Trimming, blanks and typed parsing"""

    def test_whitespace_is_trimmed_and_blank_becomes_none(self, make_csv, make_line):
        text = make_csv(make_line(ride_id="  r1  ", start_station_name="   ", rideable_type=" ebike "))

        row = decode_text(text)[0].row

        assert row.ride_id == "r1"
        assert row.start_station_name is None
        assert row.rideable_type == "ebike"

    def test_unparseable_coordinates_become_none(self, make_csv, make_line):
        text = make_csv(make_line(start_lat="north", start_lng="nan", end_lat="40.5"))

        outcome = decode_text(text)[0]

        assert isinstance(outcome, AcceptedRow)
        assert outcome.row.start_lat is None
        assert outcome.row.start_lng is None
        assert outcome.row.end_lat == 40.5

    @pytest.mark.parametrize("value, expected", [
        ("2024-07-01 08:00:00", datetime(2024, 7, 1, 8, 0, 0)),
        ("2024-07-01 08:00:00.250", datetime(2024, 7, 1, 8, 0, 0, 250000)),
        ("2024-07-01T08:00:00", datetime(2024, 7, 1, 8, 0, 0)),
        ("2024-07-01T12:00:00Z", datetime(2024, 7, 1, 12, 0, 0)),
        ("2024-07-01T08:00:00-04:00", datetime(2024, 7, 1, 12, 0, 0)),
        ("07/01/2024 08:00", datetime(2024, 7, 1, 8, 0, 0)),
    ])
    def test_timestamp_layouts(self, make_csv, make_line, value, expected):
        text = make_csv(make_line(started_at=value, ended_at="2024-07-02 00:00:00"))

        row = decode_text(text)[0].row

        assert row.started_at == expected
        assert row.started_at.tzinfo is None

    def test_unparseable_timestamp_is_rejected_with_ride_id(self, make_csv, make_line):
        text = make_csv(make_line(ride_id="r7", ended_at="not a date"))

        outcome = decode_text(text)[0]

        assert isinstance(outcome, RejectedRow)
        assert outcome.code == ImportErrorCode.TIMESTAMP_PARSE_FAILURE
        assert outcome.ride_id == "r7"
        assert outcome.row_number == 2

    @pytest.mark.parametrize("value", ["now", "today", "Tomorrow", "yesterday"])
    def test_relative_words_are_not_timestamps(self, make_csv, make_line, value):
        outcome = decode_text(make_csv(make_line(ride_id="r7", started_at=value)))[0]

        assert isinstance(outcome, RejectedRow)
        assert outcome.code == ImportErrorCode.TIMESTAMP_PARSE_FAILURE
        assert outcome.ride_id == "r7"

    def test_blank_timestamp_is_rejected(self, make_csv, make_line):
        outcome = decode_text(make_csv(make_line(started_at="  ")))[0]

        assert outcome.code == ImportErrorCode.TIMESTAMP_PARSE_FAILURE

    @pytest.mark.parametrize("token, expected", [
        ("member", MemberType.MEMBER),
        ("MEMBER", MemberType.MEMBER),
        (" Casual ", MemberType.CASUAL),
        ("subscriber", MemberType.UNKNOWN),
        ("", MemberType.UNKNOWN),
    ])
    def test_member_category_mapping(self, make_csv, make_line, token, expected):
        row = decode_text(make_csv(make_line(member_casual=token)))[0].row

        assert row.member_type == expected

    def test_empty_ride_id_is_left_for_the_validator(self, make_csv, make_line):
        outcome = decode_text(make_csv(make_line(ride_id="   ")))[0]

        assert isinstance(outcome, AcceptedRow)
        assert outcome.row.ride_id == ""


class TestStructuralFailures:
    """Records that cannot be decoded at all"""

    def test_wrong_field_count_is_malformed(self, make_csv, make_line):
        text = make_csv(make_line(ride_id="r1"), "r2,classic_bike,2024-07-01 08:00:00")

        outcomes = decode_text(text)

        assert isinstance(outcomes[0], AcceptedRow)
        rejected = outcomes[1]
        assert rejected.code == ImportErrorCode.MALFORMED_ROW
        assert rejected.row_number == 3
        assert rejected.raw_line == "r2,classic_bike,2024-07-01 08:00:00"

    def test_invalid_utf8_is_malformed_and_stored_printable(self, make_csv, make_line):
        good = make_line(ride_id="r1")
        bad = make_line(ride_id="r2", start_station_name="Caf\xe9")
        data = make_csv(good, "PLACEHOLDER").encode("utf-8")
        data = data.replace(b"PLACEHOLDER", bad.encode("latin-1"))

        outcomes = decode_bytes(data)

        assert isinstance(outcomes[0], AcceptedRow)
        assert outcomes[1].code == ImportErrorCode.MALFORMED_ROW
        assert "\ufffd" in outcomes[1].raw_line
        assert "\udce9" not in outcomes[1].raw_line

    def test_raw_line_is_truncated(self, make_csv):
        long_line = "x" * 50

        outcome = decode_text(make_csv(long_line), max_length=10)[0]

        assert outcome.code == ImportErrorCode.MALFORMED_ROW
        assert outcome.raw_line == "x" * 10


class TestRowNumbers:
    """Row numbers are 1-based physical line numbers; the header is line 1"""

    def test_blank_lines_are_skipped_but_counted(self, make_line):
        text = "\n".join([
            "ride_id,started_at,ended_at",
            "r1,2024-07-01 08:00:00,2024-07-01 08:10:00",
            "",
            "r2,2024-07-01 09:00:00,2024-07-01 08:10:00",
        ]) + "\n"

        outcomes = decode_text(text)

        assert [o.row_number for o in outcomes] == [2, 4]

    def test_quoted_multiline_field(self):
        text = (
            "ride_id,start_station_name,started_at,ended_at\n"
            'r1,"Broadway\n& 5th",2024-07-01 08:00:00,2024-07-01 08:10:00\n'
            "r2,Main,2024-07-01 08:00:00,2024-07-01 08:10:00\n"
        )

        outcomes = decode_text(text)

        assert outcomes[0].row.start_station_name == "Broadway\n& 5th"
        assert outcomes[0].row_number == 2
        assert outcomes[1].row_number == 4

    def test_raw_line_is_the_original_text(self, make_csv, make_line):
        line = make_line(ride_id=" r1 ")

        outcome = decode_text(make_csv(line))[0]

        assert outcome.raw_line == line
