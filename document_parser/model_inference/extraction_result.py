"""
Extraction Result Data Class.

Result of running one document through extraction, prompting, parsing
and scoring. ``to_dict()`` renders the camelCase shape returned to
callers of the single-document operation.

Author: ML Engineering Team
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class ExtractionResult:
    """
    Structured record extracted from one document.

    Attributes:
        extracted_data: Parsed model reply (a JSON object).
        confidence: Completeness score in [0, 1].
        processing_time_ms: Wall time of the whole pipeline run.
        document_type: Document type identifier.
        file_name: Original file name.
        warnings: Non-fatal extractor warnings.
        extraction_timestamp: When extraction finished (ISO 8601).

    Example:
        >>> result = ExtractionResult(
        ...     extracted_data={"vendorName": "Acme", "totalAmount": 450},
        ...     confidence=0.75,
        ...     processing_time_ms=1830,
        ...     document_type="invoice",
        ... )
        >>> result.to_dict()["extractedData"]["totalAmount"]
        450
    """

    extracted_data: Dict[str, Any]
    confidence: float
    processing_time_ms: int
    document_type: str
    file_name: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    extraction_timestamp: Optional[str] = None

    def __post_init__(self):
        if self.extraction_timestamp is None:
            self.extraction_timestamp = datetime.now().isoformat(timespec="seconds")

    @property
    def populated_fields(self) -> Dict[str, Any]:
        """Top-level fields whose value is not null."""
        return {k: v for k, v in self.extracted_data.items() if v is not None}

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "extractedData": self.extracted_data,
            "confidence": self.confidence,
            "processingTimeMs": self.processing_time_ms,
            "documentType": self.document_type,
        }
        if self.file_name is not None:
            data["fileName"] = self.file_name
        if self.warnings:
            data["warnings"] = list(self.warnings)
        return data

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def __repr__(self) -> str:
        return (
            f"ExtractionResult(type='{self.document_type}', "
            f"fields={len(self.extracted_data)}, confidence={self.confidence:.2f})"
        )
