"""
Package project files for download.
"""

import asyncio
import io
import logging
import mimetypes
import zipfile
from collections.abc import Iterable

from .filesystem import FileRecord

logger = logging.getLogger(__name__)

COMPRESS_LEVEL = 9
DEFAULT_PROJECT_NAME = "project"


def archive_filename(project_name: str | None = None) -> str:
    return f"{project_name or DEFAULT_PROJECT_NAME}.zip"


def build_archive(records: Iterable[FileRecord]) -> bytes:
    """Write records into an in-memory zip archive.

    Each filename is used verbatim as the entry path, so nested paths become
    directories on extraction. All entries use deflate at the maximum level.
    """
    buf = io.BytesIO()
    with zipfile.ZipFile(
        buf, "w", zipfile.ZIP_DEFLATED, compresslevel=COMPRESS_LEVEL
    ) as zf:
        for record in records:
            zf.writestr(record.filename, record.code.encode("utf-8"))
    return buf.getvalue()


async def export_archive(
    records: Iterable[FileRecord],
    project_name: str = DEFAULT_PROJECT_NAME,
) -> bytes:
    """Build a zip archive of the given records without blocking the event loop.

    Args:
        records: Snapshot of project files
        project_name: Used for logging; the download name is archive_filename()

    Returns:
        Archive bytes

    Raises:
        Any error raised while packaging; no partial archive is returned
    """
    snapshot = list(records)
    try:
        blob = await asyncio.to_thread(build_archive, snapshot)
    except Exception:
        logger.exception(f"Failed to build archive for project {project_name}")
        raise
    logger.info(
        f"Built archive {archive_filename(project_name)} "
        f"({len(snapshot)} files, {len(blob)} bytes)"
    )
    return blob


def detect_content_type(filename: str) -> str:
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or "text/plain"


def export_file(record: FileRecord) -> tuple[str, bytes, str]:
    """Prepare a single file for download.

    Returns:
        (download name, content bytes, MIME type)
    """
    download_name = record.filename.replace("\\", "/").rsplit("/", 1)[-1]
    return download_name, record.code.encode("utf-8"), detect_content_type(record.filename)
