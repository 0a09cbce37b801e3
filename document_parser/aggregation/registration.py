"""
Offer Registration Module.

Prepares extracted loan offers for persistence. The derived field
``fixzinssatz_in_jahren`` (fixed-rate tenor in whole years) is computed
from the offer date and the end of the fixed-rate period.

Author: ML Engineering Team
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config import get_config
from document_parser.utils.logger import get_logger
from document_parser.postprocessor.normalizers import DateNormalizer

logger = get_logger(__name__)


@dataclass
class PersistenceOutcome:
    """
    Result reported by a persistence collaborator.

    Attributes:
        success: True when every record was saved.
        saved_count: Records actually saved.
        requested_count: Records handed to the store.
        error: First failure message, if any.
    """

    success: bool
    saved_count: int
    requested_count: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "success": self.success,
            "savedCount": self.saved_count,
            "requestedCount": self.requested_count,
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class RegistrationResult:
    """Outcome of the registration flow."""

    individual_offers: List[Dict[str, Any]]
    document_type: str
    processing_time_ms: int
    confidence: float
    persistence: PersistenceOutcome
    confidences: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "individualOffers": self.individual_offers,
            "documentType": self.document_type,
            "processingTimeMs": self.processing_time_ms,
            "confidence": self.confidence,
            "persistenceOutcome": self.persistence.to_dict(),
        }


class TenorCalculator:
    """
    Derives the fixed-rate tenor of a loan offer.

    Rules:
        - both fields parse as dates: whole years between them, kept
          only inside [min_years, max_years], rendered "<n> Jahre"
        - end field is text that is not a date ("10 Jahre"): returned
          unchanged
        - anything else: unavailable (None)

    Example:
        >>> calculator = TenorCalculator()
        >>> calculator.compute({"angebotsdatum": "01.01.2020",
        ...                     "fixzinsperiode": "01.01.2027"})
        "7 Jahre"
    """

    def __init__(
        self,
        date_normalizer: Optional[DateNormalizer] = None,
        start_field: Optional[str] = None,
        end_field: Optional[str] = None,
        target_field: Optional[str] = None,
        min_years: Optional[int] = None,
        max_years: Optional[int] = None,
        suffix: Optional[str] = None
    ) -> None:
        self.date_normalizer = date_normalizer or DateNormalizer()
        self.start_field = start_field or get_config("postprocessing.tenor.start_field", "angebotsdatum")
        self.end_field = end_field or get_config("postprocessing.tenor.end_field", "fixzinsperiode")
        self.target_field = target_field or get_config(
            "postprocessing.tenor.target_field", "fixzinssatz_in_jahren"
        )
        self.min_years = min_years if min_years is not None else get_config("postprocessing.tenor.min_years", 0)
        self.max_years = max_years if max_years is not None else get_config("postprocessing.tenor.max_years", 50)
        self.suffix = suffix or get_config("postprocessing.tenor.suffix", "Jahre")

    def compute(self, record: Dict[str, Any]) -> Optional[str]:
        end_raw = record.get(self.end_field)
        end = self.date_normalizer.parse(end_raw)
        if end is None:
            if isinstance(end_raw, str) and end_raw.strip():
                return end_raw
            return None

        start = self.date_normalizer.parse(record.get(self.start_field))
        if start is None:
            return None

        years = DateNormalizer.whole_years_between(start, end)
        if not self.min_years <= years <= self.max_years:
            logger.warning(
                f"Tenor of {years} years outside [{self.min_years}, {self.max_years}], "
                "treating as unavailable"
            )
            return None
        return f"{years} {self.suffix}"

    def enrich(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Return a copy of ``record`` with the derived field set.

        A value the model already supplied is kept when nothing can be
        computed.
        """
        enriched = dict(record)
        computed = self.compute(record)
        if computed is not None:
            enriched[self.target_field] = computed
        elif enriched.get(self.target_field) in (None, ""):
            enriched[self.target_field] = None
        return enriched
