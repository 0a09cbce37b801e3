"""
Offer Comparison Module.

Builds the ComparisonResult of the multi-offer flow. The extracted
offers are rendered into one labelled text ("Offer N (file): {json}")
for the comparison prompt; the model's answer supplies the parameter
list and best-offer entries. Parameters with a declared comparison rule
are ranked locally and the local entry replaces whatever the model
picked for them, so those winners are deterministic.

Author: ML Engineering Team
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config import get_config
from document_parser.utils.logger import get_logger
from document_parser.postprocessor.normalizers import AmountNormalizer
from document_parser.postprocessor.validators import get_object

logger = get_logger(__name__)

FILE_NAME_KEY = "fileName"


@dataclass
class BestOffer:
    """Winner for one parameter."""

    parameter: str
    offer_id: str
    value: Any
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"parameter": self.parameter, "offerId": self.offer_id, "value": self.value}
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class ComparisonResult:
    """
    Comparison of several offers.

    Attributes:
        parameters: Compared parameter names.
        offers: Offer id → extracted record, in input order.
        best_offer: At most one entry per parameter.
    """

    parameters: List[str] = field(default_factory=list)
    offers: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    best_offer: List[BestOffer] = field(default_factory=list)

    def best_for(self, parameter: str) -> Optional[BestOffer]:
        for entry in self.best_offer:
            if entry.parameter == parameter:
                return entry
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parameters": list(self.parameters),
            "offers": self.offers,
            "bestOffer": [entry.to_dict() for entry in self.best_offer],
        }


class OfferComparator:
    """
    Combines per-offer records into a ComparisonResult.

    Attributes:
        offer_label: Label used in the combined text ("Offer").
        offer_id_prefix: Prefix of offer ids ("offer_").

    Example:
        >>> comparator = OfferComparator()
        >>> text = comparator.build_combined_text(records)
        >>> result = comparator.build_result(records, reply, {"kreditbetrag": "max"})
        >>> result.best_for("kreditbetrag").offer_id
        'offer_2'
    """

    def __init__(
        self,
        offer_label: Optional[str] = None,
        offer_id_prefix: Optional[str] = None,
        amount_normalizer: Optional[AmountNormalizer] = None
    ) -> None:
        self.offer_label = offer_label or get_config("comparison.offer_label", "Offer")
        self.offer_id_prefix = offer_id_prefix or get_config("comparison.offer_id_prefix", "offer_")
        self.amount_normalizer = amount_normalizer or AmountNormalizer()

    def offer_id(self, index: int) -> str:
        return f"{self.offer_id_prefix}{index + 1}"

    def build_combined_text(self, records: List[Dict[str, Any]]) -> str:
        """Render all offers as labelled JSON blocks, in input order."""
        blocks = []
        for index, record in enumerate(records):
            file_name = record.get(FILE_NAME_KEY, "unknown")
            body = json.dumps(record, indent=2, ensure_ascii=False)
            blocks.append(f"{self.offer_label} {index + 1} ({file_name}):\n{body}")
        return "\n\n".join(blocks)

    def rank(self, offers: Dict[str, Dict[str, Any]], rules: Dict[str, str]) -> List[BestOffer]:
        """
        Pick the best offer per ruled parameter.

        Values that cannot be read as numbers are skipped. Ties go to the
        earliest offer.

        Args:
            offers: Offer id → record, in input order.
            rules: Parameter → "min" or "max".
        """
        ranked = []
        for parameter, comparator in rules.items():
            best_id, best_number, best_raw = None, None, None
            for offer_id, record in offers.items():
                raw = record.get(parameter)
                number = self.amount_normalizer.to_float(raw)
                if number is None:
                    continue
                better = (
                    best_number is None
                    or (comparator == "max" and number > best_number)
                    or (comparator == "min" and number < best_number)
                )
                if better:
                    best_id, best_number, best_raw = offer_id, number, raw

            if best_id is not None:
                reason = "Highest value" if comparator == "max" else "Lowest value"
                ranked.append(BestOffer(parameter, best_id, best_raw, reason))
        return ranked

    def build_result(
        self,
        records: List[Dict[str, Any]],
        model_reply: Optional[Dict[str, Any]],
        rules: Optional[Dict[str, str]] = None
    ) -> ComparisonResult:
        """
        Merge local records, the model's comparison and local ranking.

        Args:
            records: Extracted offers in input order, each with fileName.
            model_reply: Parsed comparison reply; may nest everything
                under a "comparison" key.
            rules: Comparison rules of the document type.

        Returns:
            ComparisonResult with ``offers`` always built from ``records``.
        """
        rules = rules or {}
        offers = {self.offer_id(i): record for i, record in enumerate(records)}

        reply = model_reply or {}
        reply = get_object(reply, "comparison") or reply

        parameters = self._parameters(reply, records)

        local = self.rank(offers, rules)
        local_params = {entry.parameter for entry in local}

        merged: List[BestOffer] = list(local)
        seen = set(local_params)
        for entry in self._model_best_offers(reply, offers):
            if entry.parameter in seen:
                continue
            merged.append(entry)
            seen.add(entry.parameter)

        for entry in merged:
            if entry.parameter not in parameters:
                parameters.append(entry.parameter)

        order = {name: i for i, name in enumerate(parameters)}
        merged.sort(key=lambda entry: order[entry.parameter])

        logger.info(
            f"Compared {len(offers)} offers on {len(parameters)} parameters "
            f"({len(local)} ranked locally)"
        )
        return ComparisonResult(parameters=parameters, offers=offers, best_offer=merged)

    def _parameters(self, reply: Dict[str, Any], records: List[Dict[str, Any]]) -> List[str]:
        raw = reply.get("parameters")
        if isinstance(raw, list) and raw and all(isinstance(p, str) for p in raw):
            return list(dict.fromkeys(raw))

        parameters: List[str] = []
        for record in records:
            for key in record:
                if key != FILE_NAME_KEY and key not in parameters:
                    parameters.append(key)
        return parameters

    def _model_best_offers(
        self,
        reply: Dict[str, Any],
        offers: Dict[str, Dict[str, Any]]
    ) -> List[BestOffer]:
        entries = reply.get("bestOffer")
        if not isinstance(entries, list):
            return []

        result = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            parameter = entry.get("parameter")
            offer_id = entry.get("offerId")
            if not isinstance(parameter, str) or not isinstance(offer_id, str) or offer_id not in offers:
                logger.warning(f"Ignoring malformed best-offer entry from model: {entry}")
                continue
            reason = entry.get("reason")
            result.append(BestOffer(
                parameter=parameter,
                offer_id=offer_id,
                value=entry.get("value", offers[offer_id].get(parameter)),
                reason=str(reason) if reason else None,
            ))
        return result


@dataclass
class ComparisonReport:
    """Output of the comparison flow: per-file records plus their comparison."""

    individual_offers: List[Dict[str, Any]]
    comparison: ComparisonResult
    document_type: str
    processing_time_ms: int
    confidences: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "individualOffers": self.individual_offers,
            "comparison": self.comparison.to_dict(),
            "documentType": self.document_type,
            "processingTimeMs": self.processing_time_ms,
        }
