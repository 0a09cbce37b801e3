"""
Record Validators Module.

Structural checks on parsed records after the JSON object itself has
been accepted. Missing or null required fields are reported as
warnings: they lower confidence but do not fail the extraction.

Author: ML Engineering Team
"""

from typing import Any, Dict, List, Optional, Sequence

from document_parser.utils.logger import get_logger

logger = get_logger(__name__)


class ValidationResult:
    """
    Outcome of validating one record.

    Attributes:
        is_valid: False once an error has been added.
        errors: Error messages.
        warnings: Warning messages.
    """

    def __init__(self):
        self.is_valid = True
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_valid': self.is_valid,
            'errors': self.errors,
            'warnings': self.warnings,
        }


class RecordValidator:
    """
    Validates parsed records against a document type's field list.

    Example:
        >>> validator = RecordValidator()
        >>> result = validator.validate({"name": None}, ["name"])
        >>> result.warnings
        ["Required field 'name' is null"]
    """

    def validate(self, record: Dict[str, Any], required_fields: Sequence[str]) -> ValidationResult:
        result = ValidationResult()

        if not isinstance(record, dict):
            result.add_error(f"Record must be an object, got {type(record).__name__}")
            return result

        if not record:
            result.add_warning("Record contains no fields")

        for name in required_fields:
            if name not in record:
                result.add_warning(f"Required field '{name}' is missing")
            elif record[name] is None:
                result.add_warning(f"Required field '{name}' is null")

        for name in record:
            if not isinstance(name, str) or not name.strip():
                result.add_warning(f"Blank field name: {name!r}")

        return result


def get_object(record: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
    """Return ``record[key]`` if it is a JSON object, else None."""
    value = record.get(key) if isinstance(record, dict) else None
    return value if isinstance(value, dict) else None
