"""
Confidence Scorer Module.

Completeness-based confidence for one extracted record:

    score = (present required + min(0.5 * extras, 0.5 * required count))
            / required count

clamped to [0, 1]. A required field is present when its value is not
null; extras are non-null fields outside the required set. Types that
declare no required fields score as the share of non-null top-level
fields. Scoring never raises.

Author: ML Engineering Team
"""

from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from document_parser.utils.logger import get_logger
from document_parser.utils.helpers import is_populated

logger = get_logger(__name__)


class ConfidenceScorer:
    """
    Scores records against the required fields of their document type.

    Attributes:
        EXTRA_FIELD_BONUS: Bonus per non-required populated field.

    Example:
        >>> scorer = ConfidenceScorer(registry)
        >>> scorer.score({"vendorName": "Acme", "invoiceNumber": "123",
        ...               "invoiceDate": None, "totalAmount": 450}, "invoice")
        0.75
    """

    EXTRA_FIELD_BONUS = 0.5

    def __init__(
        self,
        registry=None,
        required_fields: Optional[Mapping[str, Sequence[str]]] = None
    ) -> None:
        """
        Args:
            registry: DocumentTypeRegistry supplying ``required_fields``.
            required_fields: Explicit type → fields table, consulted
                before the registry.
        """
        self.registry = registry
        self._required_fields = {k: tuple(v) for k, v in (required_fields or {}).items()}

    def required_fields_for(self, document_type_id: str) -> Tuple[str, ...]:
        if document_type_id in self._required_fields:
            return self._required_fields[document_type_id]
        if self.registry is not None:
            definition = self.registry.get(document_type_id)
            if definition is not None:
                return tuple(definition.required_fields)
        return ()

    def score(self, record: Dict[str, Any], document_type_id: str) -> float:
        """
        Compute the confidence of one record.

        Args:
            record: Parsed record.
            document_type_id: Type whose required fields apply.

        Returns:
            Score in [0.0, 1.0].
        """
        if not isinstance(record, dict) or not record:
            return 0.0

        required = self.required_fields_for(document_type_id)
        if not required:
            populated = sum(1 for value in record.values() if is_populated(value))
            return round(populated / len(record), 4)

        required_set = set(required)
        present = sum(1 for name in required if record.get(name) is not None)
        extras = sum(
            1 for name, value in record.items()
            if name not in required_set and value is not None
        )

        bonus = min(extras * self.EXTRA_FIELD_BONUS, len(required) * self.EXTRA_FIELD_BONUS)
        score = (present + bonus) / len(required)
        score = max(0.0, min(1.0, score))

        logger.debug(
            f"Confidence for {document_type_id}: {present}/{len(required)} required, "
            f"{extras} extra field(s) → {score:.2f}"
        )
        return round(score, 4)
