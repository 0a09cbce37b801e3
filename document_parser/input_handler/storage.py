"""
Upload Storage Module.

Temporary on-disk staging of uploads between ingress and extraction.
Each staged file gets a collision-free name and is removed when the
``staged`` block exits, on success and on failure. A failed removal is
logged and never raised.

Author: ML Engineering Team
"""

import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from config import get_config
from document_parser.utils.logger import get_logger
from document_parser.utils.helpers import ensure_directory, get_file_extension, safe_filename
from document_parser.utils.exceptions import ValidationError

logger = get_logger(__name__)


class UploadStorage:
    """
    Caller-scoped temporary file storage.

    Attributes:
        upload_dir: Directory staged files are written to.

    Example:
        >>> storage = UploadStorage("uploads")
        >>> with storage.staged(job.data, job.file_name) as path:
        ...     extracted = extractor.extract_file(path)
    """

    def __init__(self, upload_dir: Optional[Union[str, Path]] = None) -> None:
        self.upload_dir = Path(upload_dir or get_config("paths.upload_dir", "uploads"))

    def save(self, data: bytes, file_name: str) -> Path:
        """
        Write ``data`` under a unique name keeping the original extension.

        Returns:
            Path of the stored file.
        """
        ensure_directory(self.upload_dir)
        extension = get_file_extension(safe_filename(file_name))
        stored_name = uuid.uuid4().hex + (f".{extension}" if extension else "")
        path = self.upload_dir / stored_name
        path.write_bytes(data)
        logger.debug(f"Staged upload {file_name} as {stored_name}")
        return path

    def resolve(self, stored_name: str) -> Path:
        """
        Resolve a stored name inside the upload directory.

        Raises:
            ValidationError: If the name escapes the upload directory.
        """
        base = self.upload_dir.resolve()
        path = (base / stored_name).resolve()
        if base != path.parent and base not in path.parents:
            raise ValidationError(
                "Invalid file path: outside upload directory",
                {"file": stored_name}
            )
        return path

    def delete(self, path: Union[str, Path]) -> bool:
        """
        Remove a staged file.

        Returns:
            True if the file was removed, False otherwise. Never raises.
        """
        try:
            target = self.resolve(Path(path).name)
            target.unlink()
            return True
        except FileNotFoundError:
            return False
        except (OSError, ValidationError) as e:
            logger.warning(f"Failed to clean up temporary file {path}: {e}")
            return False

    @contextmanager
    def staged(self, data: bytes, file_name: str) -> Iterator[Path]:
        """Stage ``data`` for the duration of the block."""
        path = self.save(data, file_name)
        try:
            yield path
        finally:
            self.delete(path)

    def cleanup_old_files(self, max_age_hours: Optional[float] = None) -> int:
        """
        Remove staged files older than ``max_age_hours``.

        Returns:
            Number of files removed.
        """
        if max_age_hours is None:
            max_age_hours = get_config("storage.cleanup_max_age_hours", 1)
        if not self.upload_dir.exists():
            return 0

        cutoff = time.time() - max_age_hours * 3600
        removed = 0
        for path in self.upload_dir.iterdir():
            try:
                if path.is_file() and path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed += 1
            except OSError as e:
                logger.warning(f"Could not remove stale upload {path.name}: {e}")

        if removed:
            logger.info(f"Removed {removed} stale upload(s) from {self.upload_dir}")
        return removed
