"""
Post-Processing Module.

Turns raw model replies into validated, scored records:
    - parse_reply: fence stripping, brace slicing, JSON object check
    - ConfidenceScorer: completeness score per document type
    - RecordValidator: required-field warnings
    - DateNormalizer / AmountNormalizer: value normalization
"""

from .response_parser import parse_reply, strip_fences
from .confidence import ConfidenceScorer
from .validators import RecordValidator, ValidationResult, get_object
from .normalizers import AmountNormalizer, DateNormalizer

__all__ = [
    'parse_reply',
    'strip_fences',
    'ConfidenceScorer',
    'RecordValidator',
    'ValidationResult',
    'get_object',
    'AmountNormalizer',
    'DateNormalizer',
]
