from sqlalchemy import Column, BigInteger, Integer, String, Enum, DateTime, Float, Text, Index
from models.base import Base, ImportStatus, utcnow


class ImportRun(Base):
    """
    Tracks metadata for each imported archive entry.

    Purpose:
    - Audit trail of all import runs
    - Progress and error counts per CSV entry
    - Failure cause when a batch was rolled back

    Written through the error sink's own session, so a rolled-back batch
    never erases the run record.
    """
    __tablename__ = "import_runs"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    # Source identification
    archive_path = Column(String(1024), nullable=False)
    entry_name = Column(String(260), nullable=False, index=True)

    # Run metadata
    status = Column(Enum(ImportStatus), default=ImportStatus.RUNNING, nullable=False)

    # Timestamps
    started_at = Column(DateTime, nullable=False, default=utcnow)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Statistics
    rows_read = Column(Integer, default=0)
    rows_loaded = Column(Integer, default=0)
    rows_rejected = Column(Integer, default=0)
    batches_committed = Column(Integer, default=0)

    # Error tracking
    error_message = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_import_run_status", "status", "started_at"),
    )
