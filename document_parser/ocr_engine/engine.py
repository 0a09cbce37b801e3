"""
Main OCR Engine Module.

OCREngine is the single entry point for image text recognition. Each
call runs inside a session: the backend is acquired right before use
and released in a ``finally`` block, so no engine handle outlives the
extraction that needed it, even when OCR fails.

Usage:
    from document_parser.ocr_engine import OCREngine

    engine = OCREngine()
    result = engine.extract(image)
    print(result.text)

Author: ML Engineering Team
"""

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from PIL import Image

from config import get_config
from document_parser.utils.logger import get_logger
from document_parser.utils.exceptions import TextExtractionError
from .ocr_result import OCRResult
from .tesseract_backend import TesseractBackend

logger = get_logger(__name__)


class OCREngine:
    """
    OCR engine with per-call backend lifetime.

    Supported Backends:
        - tesseract: Tesseract OCR (default)
        - easyocr: EasyOCR (optional extra)

    Attributes:
        backend_name: Name of the configured backend.

    Example:
        >>> engine = OCREngine()
        >>> with engine.session() as backend:
        ...     result = backend.extract(image)
    """

    SUPPORTED_BACKENDS = ['tesseract', 'easyocr']

    def __init__(self, backend: Optional[str] = None) -> None:
        self.backend_name = backend or get_config("ocr.engine", "tesseract")
        if self.backend_name == "pytesseract":
            self.backend_name = "tesseract"

        if self.backend_name not in self.SUPPORTED_BACKENDS:
            logger.warning(
                f"Unknown OCR backend '{self.backend_name}', falling back to tesseract"
            )
            self.backend_name = "tesseract"

        logger.debug(f"OCR Engine configured with backend: {self.backend_name}")

    def _create_backend(self):
        if self.backend_name == "easyocr":
            return EasyOCRBackend()
        return TesseractBackend()

    @contextmanager
    def session(self) -> Iterator[Any]:
        """
        Acquire an opened backend for the duration of the block.

        The backend is closed on exit whether or not the block raised.
        """
        backend = self._create_backend()
        backend.open()
        try:
            yield backend
        finally:
            backend.close()
            logger.debug(f"Released {self.backend_name} OCR backend")

    def extract(self, image: Image.Image) -> OCRResult:
        """
        Recognize text in one image.

        Args:
            image: PIL Image (RGB).

        Returns:
            OCRResult for the image.

        Raises:
            TextExtractionError: If the backend is unavailable or fails.
        """
        with self.session() as backend:
            return backend.extract(image)

    def get_backend_info(self) -> Dict[str, Any]:
        return {
            "backend": self.backend_name,
            "languages": self._create_backend().languages,
        }


class EasyOCRBackend:
    """
    EasyOCR backend. ``open()`` builds the reader, which loads the
    recognition models; ``close()`` drops it again.
    """

    name = "easyocr"

    def __init__(self, languages: Optional[List[str]] = None, gpu: Optional[bool] = None):
        self.languages = list(languages or get_config("ocr.easyocr.languages", ["de", "en"]))
        self.gpu = gpu if gpu is not None else get_config("ocr.easyocr.gpu", False)
        self._reader = None

    def open(self) -> None:
        try:
            import easyocr
        except ImportError:
            raise TextExtractionError(
                "image", "easyocr is not installed (pip install document-parser[easyocr])"
            )
        self._reader = easyocr.Reader(self.languages, gpu=self.gpu, verbose=False)

    def close(self) -> None:
        self._reader = None

    def extract(self, image: Image.Image) -> OCRResult:
        import numpy as np

        if self._reader is None:
            raise TextExtractionError("image", "EasyOCR backend used outside an OCR session")

        start_time = time.time()
        results = self._reader.readtext(np.array(image))

        lines = [text.strip() for _, text, _ in results if text and text.strip()]
        confidences = [conf * 100 for _, text, conf in results if text and text.strip()]

        return OCRResult(
            lines=lines,
            languages=self.languages,
            engine=self.name,
            processing_time=time.time() - start_time,
            confidences=confidences,
            metadata={"gpu": self.gpu}
        )
