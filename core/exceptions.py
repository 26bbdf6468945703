"""
Custom exceptions for the ride import pipeline with structured error context.

This module provides the exception hierarchy for failures that stop an
import run. Each exception includes context information for debugging and
monitoring.

Row-level problems (missing ride id, bad timestamps, malformed CSV records)
are NOT exceptions: they are returned as ``RejectedRow`` values, written to
the import error table and skipped.

Exception Hierarchy:
    ETLException (base)
    ├── ExtractionError
    │   ├── ArchiveNotFoundError
    │   ├── ArchiveCorruptError
    │   ├── EmptyArchiveError
    │   └── CSVExtractionError
    ├── TransformationError
    │   └── RowDecodeError
    ├── LoadError
    │   ├── DatabaseError
    │   └── BatchLoadError
    └── ImportCancelledError
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ETLException(Exception):
    """
    Base exception for all import-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (file, entry, batch, ...)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        # Add timestamp to context
        self.context["error_timestamp"] = self.timestamp.isoformat()

        # Chain original exception if provided
        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ETLException):
    """Base exception for archive and entry level failures."""
    pass


class ArchiveNotFoundError(ExtractionError):
    """
    Raised when the archive path does not resolve to a readable file.

    Context should include:
        - archive_path: The path that was requested
    """
    pass


class ArchiveCorruptError(ExtractionError):
    """
    Raised when the archive exists but cannot be opened as a ZIP file.

    Context should include:
        - archive_path: The path that was requested
    """
    pass


class EmptyArchiveError(ExtractionError):
    """Raised when an archive contains no non-empty CSV entries."""
    pass


class CSVExtractionError(ExtractionError):
    """
    Raised when a CSV entry cannot be processed at all.

    Context should include:
        - entry_name: Name of the entry inside the archive
        - line: Physical line of the unreadable header
    """
    pass


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(ETLException):
    """Base exception for data transformation failures."""
    pass


class RowDecodeError(TransformationError):
    """
    Internal signal raised while decoding a single CSV record.

    The decoder converts it into a ``RejectedRow``; it never escapes to the
    import driver.
    """

    def __init__(self, code, message: str, ride_id: Optional[str] = None):
        super().__init__(message, context={"error_code": code.value})
        self.code = code
        self.ride_id = ride_id


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(ETLException):
    """Base exception for data loading failures."""
    pass


class DatabaseError(LoadError):
    """
    Exception raised when a database operation outside a batch fails.

    Context should include:
        - operation: Type of database operation (INSERT, SELECT, ...)
        - table_name: Name of the table
    """
    pass


class BatchLoadError(LoadError):
    """
    Exception raised when a batch upsert fails and was rolled back.

    Context should include:
        - source_file: Entry the batch came from
        - batch_index: 1-based batch number within the entry
        - rows_in_batch: Number of buffered rows in the batch
    """
    pass


# ============================================================================
# Control flow
# ============================================================================

class ImportCancelledError(ETLException):
    """Raised when a cancellation request is honoured at a row or entry boundary."""
    pass
