from datetime import datetime, timezone
from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ============================================================================
# ENUMS
# ============================================================================

class MemberType(str, enum.Enum):
    """Rider category"""
    MEMBER = "Member"
    CASUAL = "Casual"
    UNKNOWN = "Unknown"

    @classmethod
    def from_csv(cls, value) -> "MemberType":
        """Map a member_casual token case-insensitively; anything else is UNKNOWN"""
        if value is None:
            return cls.UNKNOWN
        token = str(value).strip().lower()
        if token == "member":
            return cls.MEMBER
        if token == "casual":
            return cls.CASUAL
        return cls.UNKNOWN


class ImportErrorCode(str, enum.Enum):
    """Classification of a rejected CSV row"""
    MISSING_IDENTIFIER = "MissingIdentifier"
    TIMESTAMP_PARSE_FAILURE = "TimestampParseFailure"
    END_BEFORE_START = "EndBeforeStart"
    MALFORMED_ROW = "MalformedRow"


class ImportStatus(str, enum.Enum):
    """Import run status"""
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"
