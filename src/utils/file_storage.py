"""Local-disk storage for uploaded files.

Uploads live in one flat directory. Stored names are
``{timestamp_ms}-{sanitized original name}`` so two uploads of the same
file never collide.
"""

import io
import logging
import re
import time
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional

import pdfplumber

from config import ALLOWED_UPLOAD_EXTENSIONS, MAX_FILE_SIZE, UPLOAD_DIR
from core.exceptions import StoredFileNotFoundError

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".zip": "application/zip",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Extensions read as plain text for plagiarism checks
TEXT_EXTENSIONS = {".txt", ".md", ".py"}


class InvalidFileError(Exception):
    """Exception raised for an empty upload or an unsafe filename."""

    pass


class FileTooLargeError(Exception):
    """Exception raised when an upload exceeds the size limit."""

    pass


class UnsupportedFileTypeError(Exception):
    """Exception raised when an upload's extension is not allowed."""

    pass


class StoredFile(NamedTuple):
    filename: str
    original_name: str
    size: int
    content_type: str


def sanitize_filename(name: str) -> str:
    safe = re.sub(r"[^\w\-.]", "_", Path(name).name).lstrip(".")
    return safe or "file"


def content_type_for(filename: str) -> str:
    return CONTENT_TYPES.get(Path(filename).suffix.lower(), DEFAULT_CONTENT_TYPE)


class FileStorage:
    """Saves, reads and deletes files in the uploads directory."""

    def __init__(
        self,
        upload_dir: Path = UPLOAD_DIR,
        max_size: int = MAX_FILE_SIZE,
        allowed_extensions: Optional[List[str]] = None,
    ):
        self.upload_dir = Path(upload_dir)
        self.max_size = max_size
        self.allowed_extensions = (
            allowed_extensions if allowed_extensions is not None else ALLOWED_UPLOAD_EXTENSIONS
        )
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def validate(self, original_name: Optional[str], size: int) -> None:
        """Check an upload before it is written.

        Raises:
            InvalidFileError: If the file has no name or is empty.
            UnsupportedFileTypeError: If the extension is not allowed.
            FileTooLargeError: If the file exceeds ``max_size``.
        """
        if not original_name:
            raise InvalidFileError("No file provided")
        extension = Path(original_name).suffix.lower()
        if extension not in self.allowed_extensions:
            raise UnsupportedFileTypeError(
                f"File type '{extension or 'none'}' is not allowed. "
                f"Allowed types: {', '.join(self.allowed_extensions)}"
            )
        if size == 0:
            raise InvalidFileError("File is empty")
        if size > self.max_size:
            raise FileTooLargeError(
                f"File size exceeds maximum allowed size of {self.max_size // (1024 * 1024)}MB"
            )

    def save(self, content: bytes, original_name: str) -> StoredFile:
        self.validate(original_name, len(content))
        safe_name = sanitize_filename(original_name)
        timestamp = int(time.time() * 1000)
        filename = f"{timestamp}-{safe_name}"
        while (self.upload_dir / filename).exists():
            timestamp += 1
            filename = f"{timestamp}-{safe_name}"

        with open(self.upload_dir / filename, "wb") as f:
            f.write(content)
        logger.info("Stored upload %s as %s (%d bytes)", original_name, filename, len(content))
        return StoredFile(
            filename=filename,
            original_name=original_name,
            size=len(content),
            content_type=content_type_for(filename),
        )

    def resolve(self, filename: str) -> Path:
        """Map a stored filename to its path inside the uploads directory.

        Raises:
            InvalidFileError: If the name would escape the uploads directory.
        """
        if not filename or "/" in filename or "\\" in filename or filename in (".", ".."):
            raise InvalidFileError("Invalid filename")
        path = (self.upload_dir / filename).resolve()
        if path.parent != self.upload_dir.resolve():
            raise InvalidFileError("Invalid filename")
        return path

    def exists(self, filename: str) -> bool:
        try:
            return self.resolve(filename).is_file()
        except InvalidFileError:
            return False

    def read(self, filename: str) -> bytes:
        path = self.resolve(filename)
        if not path.is_file():
            raise StoredFileNotFoundError(filename)
        with open(path, "rb") as f:
            return f.read()

    def delete(self, filename: str) -> None:
        path = self.resolve(filename)
        if not path.is_file():
            raise StoredFileNotFoundError(filename)
        path.unlink()
        logger.info("Deleted stored file: %s", filename)

    def delete_many(self, filenames: Iterable[str]) -> None:
        """Remove files left behind by deleted records; missing ones are skipped."""
        for filename in filenames:
            try:
                self.delete(filename)
            except (StoredFileNotFoundError, InvalidFileError) as e:
                logger.warning("Could not delete stored file %s: %s", filename, e)

    def extract_text(self, filename: str) -> str:
        """Best-effort text of a stored file for similarity checks.

        Text files are decoded leniently and PDFs go through pdfplumber.
        Anything else, or a file that cannot be read, yields an empty string.
        """
        extension = Path(filename).suffix.lower()
        try:
            content = self.read(filename)
        except (StoredFileNotFoundError, InvalidFileError) as e:
            logger.warning("Cannot read %s for text extraction: %s", filename, e)
            return ""

        if extension in TEXT_EXTENSIONS:
            return content.decode("utf-8", errors="ignore")
        if extension == ".pdf":
            try:
                with pdfplumber.open(io.BytesIO(content)) as pdf:
                    text_parts = [page.extract_text() or "" for page in pdf.pages]
            except Exception as e:
                logger.warning("PDF text extraction failed for %s: %s", filename, e)
                return ""
            return "\n".join(text_parts)
        return ""
