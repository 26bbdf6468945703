"""
ZIP archive source exposing contained CSV files as text streams
"""

import io
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, TextIO, Union

from core.exceptions import ArchiveCorruptError, ArchiveNotFoundError
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveEntry:
    """A CSV file inside the archive"""
    name: str
    size: int


class ZipArchiveSource:
    """
    Read CSV entries out of a ZIP archive.

    Supports:
    - Entry discovery (``.csv`` suffix, case-insensitive, non-zero size)
    - One decoded text stream per entry, opened and closed by the caller
      through ``open_entry``

    Usage:
        with ZipArchiveSource("202407-citibike-tripdata.zip") as source:
            for entry in source.list_entries():
                with source.open_entry(entry) as stream:
                    ...
    """

    CSV_SUFFIX = ".csv"

    def __init__(self, archive_path: Union[str, Path]):
        self.archive_path = Path(archive_path)
        self._archive: Optional[zipfile.ZipFile] = None

    def __enter__(self) -> "ZipArchiveSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        if not self.archive_path.is_file():
            raise ArchiveNotFoundError(
                "Archive not found",
                context={"archive_path": str(self.archive_path)}
            )

        try:
            self._archive = zipfile.ZipFile(self.archive_path, mode="r")
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveCorruptError(
                "Archive could not be opened as a ZIP file",
                context={"archive_path": str(self.archive_path)},
                original_exception=e
            )

        logger.debug(f"Opened archive {self.archive_path}")

    def close(self) -> None:
        if self._archive is not None:
            self._archive.close()
            self._archive = None

    @property
    def archive(self) -> zipfile.ZipFile:
        if self._archive is None:
            raise RuntimeError("Archive is not open")
        return self._archive

    def list_entries(self) -> List[ArchiveEntry]:
        """CSV entries with content, in archive order"""
        entries = []
        for info in self.archive.infolist():
            if info.is_dir():
                continue
            if not info.filename.lower().endswith(self.CSV_SUFFIX):
                continue
            if info.file_size <= 0:
                continue
            entries.append(ArchiveEntry(name=info.filename, size=info.file_size))
        return entries

    @contextmanager
    def open_entry(self, entry: ArchiveEntry) -> Iterator[TextIO]:
        """
        Open one entry as a text stream.

        Bytes that are not valid UTF-8 are kept as lone surrogates
        (``surrogateescape``) so the decoder can reject the affected row
        instead of the whole entry.
        """
        with self.archive.open(entry.name, mode="r") as raw:
            with io.TextIOWrapper(
                raw,
                encoding="utf-8-sig",
                errors="surrogateescape",
                newline=""
            ) as stream:
                yield stream
