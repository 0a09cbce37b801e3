"""
Utility Module for the Document Parser.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Exception taxonomy
    - File and value helpers
"""

from .logger import setup_logger, get_logger
from .helpers import (
    ensure_directory,
    get_file_extension,
    generate_timestamp,
    elapsed_ms,
)

__all__ = [
    'setup_logger',
    'get_logger',
    'ensure_directory',
    'get_file_extension',
    'generate_timestamp',
    'elapsed_ms',
]
