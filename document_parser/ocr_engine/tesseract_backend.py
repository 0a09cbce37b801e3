"""
Tesseract OCR Backend.

OCR through pytesseract with several languages loaded at once
("deu+eng" by default). Words are regrouped into lines using the
block/paragraph/line numbers Tesseract reports.

Requirements:
    - Tesseract OCR installed on the system, with the configured
      language packs
    - pytesseract Python package

Author: ML Engineering Team
"""

import time
from typing import Dict, List, Optional, Tuple

from PIL import Image

from config import get_config
from document_parser.utils.logger import get_logger
from document_parser.utils.exceptions import TextExtractionError
from .ocr_result import OCRResult

logger = get_logger(__name__)


class TesseractBackend:
    """
    Tesseract OCR backend.

    Attributes:
        language: Tesseract language string, languages joined by "+".
        psm: Page Segmentation Mode (0-13).
        oem: OCR Engine Mode (0-3).

    Example:
        >>> backend = TesseractBackend(language="deu+eng")
        >>> backend.open()
        >>> result = backend.extract(image)
        >>> backend.close()
    """

    name = "tesseract"

    def __init__(
        self,
        language: Optional[str] = None,
        psm: Optional[int] = None,
        oem: Optional[int] = None,
        tesseract_cmd: Optional[str] = None
    ) -> None:
        self.language = language or get_config("ocr.tesseract.lang", "deu+eng")
        self.psm = psm if psm is not None else get_config("ocr.tesseract.psm", 3)
        self.oem = oem if oem is not None else get_config("ocr.tesseract.oem", 3)
        self.tesseract_cmd = tesseract_cmd or get_config("ocr.tesseract.tesseract_cmd")
        self._pytesseract = None
        self._version: Optional[str] = None

        if len(self.languages) < 2:
            logger.warning(
                f"Tesseract configured with a single language ({self.language}); "
                "bilingual documents may be misread"
            )

    @property
    def languages(self) -> List[str]:
        return [lang for lang in self.language.split("+") if lang]

    def open(self) -> None:
        """
        Load pytesseract and check the Tesseract binary is reachable.

        Raises:
            TextExtractionError: If pytesseract or the binary is missing.
        """
        try:
            import pytesseract
        except ImportError:
            raise TextExtractionError(
                "image", "pytesseract is not installed (pip install pytesseract)"
            )

        if self.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.tesseract_cmd

        try:
            self._version = str(pytesseract.get_tesseract_version())
        except pytesseract.TesseractNotFoundError as e:
            raise TextExtractionError("image", f"Tesseract OCR not installed or not in PATH: {e}")

        self._pytesseract = pytesseract
        logger.debug(f"Tesseract {self._version} ready (lang={self.language})")

    def close(self) -> None:
        self._pytesseract = None

    def _build_config(self) -> str:
        return f"--psm {self.psm} --oem {self.oem}"

    def extract(self, image: Image.Image) -> OCRResult:
        """
        Run OCR on one image.

        Raises:
            TextExtractionError: If the backend is not open or Tesseract fails.
        """
        if self._pytesseract is None:
            raise TextExtractionError("image", "Tesseract backend used outside an OCR session")

        start_time = time.time()
        try:
            data = self._pytesseract.image_to_data(
                image,
                lang=self.language,
                config=self._build_config(),
                output_type=self._pytesseract.Output.DICT
            )
        except (self._pytesseract.TesseractError, RuntimeError) as e:
            logger.error(f"Tesseract OCR failed: {e}")
            raise TextExtractionError("image", str(e))

        lines, confidences = self._group_lines(data)

        result = OCRResult(
            lines=lines,
            languages=self.languages,
            engine=self.name,
            processing_time=time.time() - start_time,
            confidences=confidences,
            metadata={"psm": self.psm, "oem": self.oem, "tesseract_version": self._version}
        )
        logger.info(
            f"OCR completed: {result.word_count} words in {len(lines)} lines "
            f"({result.processing_time:.2f}s)"
        )
        return result

    def _group_lines(self, data: Dict[str, List]) -> Tuple[List[str], List[float]]:
        """Join words that share a (block, paragraph, line) key."""
        grouped: Dict[Tuple[int, int, int], List[str]] = {}
        confidences: List[float] = []

        for i, word in enumerate(data.get("text", [])):
            if not word or not word.strip():
                continue
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            grouped.setdefault(key, []).append(word.strip())

            conf = float(data["conf"][i])
            if conf >= 0:
                confidences.append(conf)

        lines = [" ".join(grouped[key]) for key in sorted(grouped)]
        return lines, confidences
