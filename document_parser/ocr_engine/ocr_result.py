"""
OCR Result Data Class.

Text produced by one OCR pass over one image, with the engine that
produced it and the mean word confidence where the engine reports one.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class OCRResult:
    """
    Output of one OCR call.

    Attributes:
        lines: Recognized text lines in reading order.
        languages: Languages the engine was configured with.
        engine: Backend name ("tesseract" or "easyocr").
        processing_time: Wall time of the OCR call in seconds.
        confidences: Per-word confidences in percent (0-100).
        metadata: Engine-specific details (psm, oem, version).
    """

    lines: List[str] = field(default_factory=list)
    languages: List[str] = field(default_factory=list)
    engine: str = "tesseract"
    processing_time: float = 0.0
    confidences: List[float] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def word_count(self) -> int:
        return sum(len(line.split()) for line in self.lines)

    @property
    def average_confidence(self) -> Optional[float]:
        if not self.confidences:
            return None
        return sum(self.confidences) / len(self.confidences)

    def is_empty(self) -> bool:
        return not self.text.strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "languages": self.languages,
            "engine": self.engine,
            "word_count": self.word_count,
            "average_confidence": self.average_confidence,
            "processing_time": round(self.processing_time, 3),
            "metadata": self.metadata,
        }

    def __repr__(self) -> str:
        return (
            f"OCRResult(engine='{self.engine}', lines={len(self.lines)}, "
            f"words={self.word_count})"
        )
