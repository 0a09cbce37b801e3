"""
Verification Evaluator Module.

Checks one document against a named checklist. The model is asked for a
``verification`` object keyed by checklist item id; every checklist item
appears in the result exactly once, whether or not the model answered
for it.

Usage:
    from document_parser.evaluation import VerificationEvaluator

    evaluator = VerificationEvaluator(gateway, checklists)
    result = evaluator.evaluate(text, "austrian_passport", "pass.pdf")
    print(result.verified)

Author: ML Engineering Team
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from document_parser.utils.logger import get_logger
from document_parser.utils.exceptions import DocumentParserError, PromptNotFoundError
from document_parser.model_inference.gateway import ModelGateway
from document_parser.model_inference.prompt_builder import fill_placeholders
from document_parser.postprocessor.response_parser import parse_reply
from document_parser.postprocessor.validators import get_object
from document_parser.registry.checklists import ChecklistRegistry, VerificationChecklist

logger = get_logger(__name__)

ITEM_NOT_FOUND = "Item not found in verification response"
VERIFICATION_NOT_FOUND = "Verification data not found in LLM response"
NO_REASON = "No reason provided"


# =============================================================================
# Result types
# =============================================================================

@dataclass
class ItemResult:
    """Outcome of one checklist item."""

    id: str
    label: str
    passed: bool
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "passed": self.passed, "reason": self.reason}


@dataclass
class VerificationResult:
    """
    Verification verdict for one document.

    ``verified`` holds only when every checklist item passed.

    Attributes:
        document_type: Checklist identifier.
        file_name: Original file name.
        items: One entry per checklist item, in checklist order.
        processing_time_ms: Wall time spent on this document.
        confidence: Model-reported confidence, if it gave one in [0, 1].
        error: Failure that prevented a real evaluation, if any.
    """

    document_type: str
    file_name: str
    items: List[ItemResult] = field(default_factory=list)
    processing_time_ms: int = 0
    confidence: Optional[float] = None
    error: Optional[Dict[str, str]] = None

    @property
    def passed_count(self) -> int:
        return sum(1 for item in self.items if item.passed)

    @property
    def total_count(self) -> int:
        return len(self.items)

    @property
    def verified(self) -> bool:
        return self.passed_count == self.total_count

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "documentType": self.document_type,
            "fileName": self.file_name,
            "verified": self.verified,
            "items": [item.to_dict() for item in self.items],
            "passedCount": self.passed_count,
            "totalCount": self.total_count,
            "processingTimeMs": self.processing_time_ms,
        }
        if self.confidence is not None:
            data["confidence"] = self.confidence
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class VerificationBatchResult:
    """Results of a multi-document verification, in input order."""

    documents: List[VerificationResult]
    total_processing_time_ms: int

    @property
    def overall_verified(self) -> bool:
        return bool(self.documents) and all(doc.verified for doc in self.documents)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documents": [doc.to_dict() for doc in self.documents],
            "overallVerified": self.overall_verified,
            "totalProcessingTimeMs": self.total_processing_time_ms,
        }


# =============================================================================
# Evaluator
# =============================================================================

class VerificationEvaluator:
    """
    Runs extracted document text through a verification checklist.

    Attributes:
        gateway: Model gateway used for the verification prompt.
        checklists: Checklist table and verification templates.
    """

    def __init__(self, gateway: ModelGateway, checklists: ChecklistRegistry) -> None:
        self.gateway = gateway
        self.checklists = checklists

    def build_template(self, checklist: VerificationChecklist) -> str:
        """
        Return the verification template with the checklist items filled in.

        Raises:
            PromptNotFoundError: If the checklist has no template.
        """
        template = self.checklists.get_prompt_template(checklist.document_type)
        if not template:
            raise PromptNotFoundError(
                checklist.document_type,
                f"{checklist.document_type}_verification_prompt.txt"
            )
        return fill_placeholders(template, {"CHECKLIST_ITEMS": checklist.render_items()})

    def evaluate(
        self,
        text: str,
        document_type: str,
        file_name: str
    ) -> VerificationResult:
        """
        Verify extracted text against the checklist of ``document_type``.

        Args:
            text: Extracted document text.
            document_type: Checklist identifier.
            file_name: Original file name.

        Returns:
            VerificationResult covering every checklist item.

        Raises:
            ChecklistNotFoundError, PromptNotFoundError, ModelError,
            InvalidResponseFormatError
        """
        checklist = self.checklists.require(document_type)
        template = self.build_template(checklist)

        reply = self.gateway.process(text, template, document_type)
        parsed = parse_reply(reply)

        result = self.build_result(checklist, parsed, file_name)
        logger.info(
            f"Verified {file_name} as {document_type}: "
            f"{result.passed_count}/{result.total_count} items passed"
        )
        return result

    def build_result(
        self,
        checklist: VerificationChecklist,
        parsed: Dict[str, Any],
        file_name: str
    ) -> VerificationResult:
        """
        Map a parsed model reply onto the checklist.

        Items the model did not answer fail with a "not found" reason; a
        reply without a ``verification`` object fails every item.
        """
        verification = get_object(parsed, "verification")
        if verification is None:
            logger.warning(f"No verification object in model reply for {file_name}")

        items = []
        for item in checklist.items:
            if verification is None:
                items.append(ItemResult(item.id, item.label, False, VERIFICATION_NOT_FOUND))
                continue

            answer = verification.get(item.id)
            if not isinstance(answer, dict):
                items.append(ItemResult(item.id, item.label, False, ITEM_NOT_FOUND))
                continue

            reason = answer.get("reason")
            items.append(ItemResult(
                id=item.id,
                label=item.label,
                passed=bool(answer.get("passed")),
                reason=str(reason) if reason else NO_REASON,
            ))

        return VerificationResult(
            document_type=checklist.document_type,
            file_name=file_name,
            items=items,
            confidence=self._confidence(parsed),
        )

    def failed_result(
        self,
        document_type: str,
        file_name: str,
        error: DocumentParserError,
        processing_time_ms: int = 0
    ) -> VerificationResult:
        """Result for a document whose evaluation failed: every item fails with the error."""
        checklist = self.checklists.get(document_type)
        reason = error.message
        items = []
        if checklist is not None:
            items = [ItemResult(item.id, item.label, False, reason) for item in checklist.items]

        return VerificationResult(
            document_type=document_type,
            file_name=file_name,
            items=items,
            processing_time_ms=processing_time_ms,
            error={"kind": error.kind, "message": error.message},
        )

    @staticmethod
    def _confidence(parsed: Dict[str, Any]) -> Optional[float]:
        value = parsed.get("confidence")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if 0.0 <= value <= 1.0:
            return float(value)
        return None
