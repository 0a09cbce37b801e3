"""
Aggregation Module.

Multi-document flows built on single-document results:
    - OfferComparator / ComparisonResult: ranked offer comparison
    - TenorCalculator / RegistrationResult: offers prepared for storage
"""

from .comparison import BestOffer, ComparisonReport, ComparisonResult, OfferComparator
from .registration import PersistenceOutcome, RegistrationResult, TenorCalculator

__all__ = [
    'BestOffer',
    'ComparisonReport',
    'ComparisonResult',
    'OfferComparator',
    'PersistenceOutcome',
    'RegistrationResult',
    'TenorCalculator',
]
