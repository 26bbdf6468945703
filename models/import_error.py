from sqlalchemy import Column, BigInteger, Integer, String, Enum, DateTime, Index
from models.base import Base, ImportErrorCode, utcnow


class ImportErrorRecord(Base):
    """
    One rejected CSV row.

    Purpose:
    - Row-level failures never abort an import; they are recorded here
    - Append-only: rows are never updated or deleted

    Design:
    - raw_line is the original record text, truncated before storage
    - ride_id is filled when one could be recovered from the row
    """
    __tablename__ = "import_errors"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    source_file = Column(String(260), nullable=False)
    row_number = Column(Integer, nullable=False)
    error_code = Column(Enum(ImportErrorCode), nullable=False)
    raw_line = Column(String(2000), nullable=False)
    occurred_at = Column(DateTime, nullable=False, default=utcnow)
    ride_id = Column(String(64), nullable=True)

    __table_args__ = (
        Index("idx_import_error_occurred", "occurred_at"),
        Index("idx_import_error_code", "error_code"),
    )
