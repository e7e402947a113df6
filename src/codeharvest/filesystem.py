"""In-memory virtual filesystem for extracted project files.

Files are keyed by filename. The store is the only owner of its records:
records are immutable, so anything handed out by ``get_file`` or
``list_files`` cannot change what the store holds.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace

from .languages import DEFAULT_LANGUAGE, language_for_filename

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileRecord:
    """A named source file recovered from model output or written by a user."""

    filename: str
    code: str
    language: str = DEFAULT_LANGUAGE

    def to_dict(self) -> dict[str, str]:
        return {"filename": self.filename, "code": self.code, "language": self.language}


class VirtualFilesystem:
    """Keyed, mutable collection of FileRecords for one project session.

    Features:
    - At most one record per filename (last write wins)
    - Missing keys are never an error: lookups return None, mutations no-op
    - Listing order is the order in which filenames were first written

    Not safe for concurrent mutation; a single owner issues operations.
    """

    def __init__(self, records: Iterable[FileRecord] | None = None):
        """Initialize filesystem.

        Args:
            records: Optional initial records, upserted in order
        """
        self._files: dict[str, FileRecord] = {}
        if records:
            self.upsert_all(records)

    def upsert_all(self, records: Iterable[FileRecord]) -> None:
        """Insert or replace each record by filename."""
        count = 0
        for record in records:
            self._files[record.filename] = record
            count += 1
        logger.debug(f"Upserted {count} file(s), store now holds {len(self._files)}")

    def write_file(self, filename: str, code: str, language: str | None = None) -> FileRecord:
        """Create or replace a single file from an explicit edit or upload.

        Args:
            filename: Store key, path separators allowed
            code: File content
            language: Language tag (inferred from the extension if None)

        Returns:
            The stored record
        """
        record = FileRecord(
            filename=filename,
            code=code,
            language=language or language_for_filename(filename),
        )
        self._files[filename] = record
        logger.debug(f"Wrote file {filename} ({len(code)} chars)")
        return record

    def list_files(self) -> list[FileRecord]:
        """Return a snapshot of all current records."""
        return list(self._files.values())

    def get_file(self, filename: str) -> FileRecord | None:
        return self._files.get(filename)

    def file_exists(self, filename: str) -> bool:
        return filename in self._files

    def remove_file(self, filename: str) -> bool:
        """Delete a file.

        Returns:
            True if the file was deleted, False if it didn't exist
        """
        removed = self._files.pop(filename, None)
        if removed is not None:
            logger.debug(f"Removed file {filename}")
        return removed is not None

    def update_file(self, filename: str, code: str) -> bool:
        """Replace only the code of an existing file.

        Returns:
            True if the file was updated, False if it didn't exist
        """
        current = self._files.get(filename)
        if current is None:
            return False
        self._files[filename] = replace(current, code=code)
        logger.debug(f"Updated file {filename} ({len(code)} chars)")
        return True

    def clear(self) -> None:
        count = len(self._files)
        self._files.clear()
        logger.debug(f"Cleared {count} file(s)")

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, filename: object) -> bool:
        return filename in self._files
