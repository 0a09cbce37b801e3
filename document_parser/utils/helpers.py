"""
Helper Utilities Module.

Small, generic functions shared by the pipeline modules.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - get_file_extension: Normalized extension without the dot
    - generate_timestamp: Formatted timestamps
    - safe_filename: Sanitize filenames for the filesystem
    - elapsed_ms: Milliseconds since a perf_counter() reading
    - is_populated: Whether an extracted value counts as present
"""

import re
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Union


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Example:
        >>> ensure_directory("uploads")
        PosixPath('uploads')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def get_file_extension(filename: Union[str, Path]) -> str:
    """
    Extract the lowercase file extension without the leading dot.

    Document type definitions list formats as bare names ("pdf", "jpg"),
    so the dot is stripped here.

    Args:
        filename: File name or path.

    Returns:
        Lowercase extension (e.g., "pdf"), or "" if there is none.

    Example:
        >>> get_file_extension("Angebot.PDF")
        "pdf"
        >>> get_file_extension("noextension")
        ""
    """
    return Path(str(filename)).suffix.lower().lstrip(".")


def generate_timestamp(format_str: str = "%Y%m%d_%H%M%S") -> str:
    """
    Generate a formatted timestamp string.

    Args:
        format_str: strftime format string.

    Returns:
        Formatted timestamp string.
    """
    return datetime.now().strftime(format_str)


def safe_filename(filename: str, replacement: str = "_") -> str:
    """
    Sanitize a filename by replacing characters invalid on common filesystems.

    Path separators are replaced too, so the result never escapes the
    directory it is joined to.

    Args:
        filename: Original filename.
        replacement: Character to replace invalid characters with.

    Returns:
        Sanitized filename.

    Example:
        >>> safe_filename("../offer:1.pdf")
        "_offer_1.pdf"
    """
    invalid_chars = r'[<>:"/\\|?*\x00-\x1f]'
    sanitized = re.sub(invalid_chars, replacement, filename)
    sanitized = sanitized.strip('. ')
    if not sanitized:
        sanitized = "unnamed"
    return sanitized


def elapsed_ms(start: float) -> int:
    """Milliseconds elapsed since ``start`` (a ``time.perf_counter()`` value)."""
    return int(round((time.perf_counter() - start) * 1000))


def is_populated(value: Any) -> bool:
    """
    Whether an extracted field value counts as present.

    None, empty/whitespace strings and empty containers are absent.
    Zero and False are present values.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, dict)):
        return len(value) > 0
    return True


def format_file_size(size_bytes: float) -> str:
    """
    Format file size in human-readable form.

    Example:
        >>> format_file_size(1536)
        "1.5 KB"
    """
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} TB"
