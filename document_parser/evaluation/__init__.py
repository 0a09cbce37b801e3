"""
Evaluation Module.

Checklist-based document verification.
"""

from .evaluator import (
    ItemResult,
    VerificationBatchResult,
    VerificationEvaluator,
    VerificationResult,
)

__all__ = [
    'ItemResult',
    'VerificationBatchResult',
    'VerificationEvaluator',
    'VerificationResult',
]
