"""In-memory zip bundles of submission files."""

import io
import logging
import posixpath
import re
import zipfile
from typing import Iterable, NamedTuple, Optional

from core.exceptions import StoredFileNotFoundError
from utils.file_storage import FileStorage, InvalidFileError, sanitize_filename

logger = logging.getLogger(__name__)


class ArchiveEntry(NamedTuple):
    stored_filename: str
    archive_name: str


def sanitize_name(name: str) -> str:
    """Replace everything but ASCII letters and digits with underscores."""
    return re.sub(r"[^A-Za-z0-9]", "_", name or "")


def submission_entry_name(student_name: str, file_name: str, folder: Optional[str] = None) -> str:
    """Archive name for a submitted file, ``[Folder/]Student_Name_file.ext``.

    The uploaded name is reduced to its base name so entries never leave the
    extraction directory.
    """
    name = f"{sanitize_name(student_name)}_{sanitize_filename(file_name or '')}"
    if folder is not None:
        return f"{sanitize_name(folder)}/{name}"
    return name


def _unique_name(name: str, used: set) -> str:
    if name not in used:
        return name
    root, ext = posixpath.splitext(name)
    n = 2
    while f"{root}_{n}{ext}" in used:
        n += 1
    return f"{root}_{n}{ext}"


def build_zip(storage: FileStorage, entries: Iterable[ArchiveEntry]) -> bytes:
    """Zip stored files under the given archive names.

    Files missing from storage are skipped with a warning. Repeated archive
    names get a ``_2``, ``_3``... suffix before the extension.
    """
    buffer = io.BytesIO()
    used = set()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for entry in entries:
            try:
                content = storage.read(entry.stored_filename)
            except (StoredFileNotFoundError, InvalidFileError) as e:
                logger.warning("Skipping %s in zip bundle: %s", entry.stored_filename, e)
                continue
            name = _unique_name(entry.archive_name, used)
            used.add(name)
            archive.writestr(name, content)
    logger.info("Built zip bundle with %d file(s)", len(used))
    return buffer.getvalue()
