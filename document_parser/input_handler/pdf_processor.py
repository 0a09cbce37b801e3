"""
PDF Processor Module.

Extracts the embedded text layer of digital PDFs. pdfplumber is the
primary extractor; PyMuPDF is used when pdfplumber is not installed or
returns no text. Scanned PDFs without a text layer are not OCR'd here.

Author: ML Engineering Team
"""

import io
from typing import Any, Dict, List, Optional, Tuple

from config import get_config
from document_parser.utils.logger import get_logger
from document_parser.utils.exceptions import InputError, TextExtractionError

logger = get_logger(__name__)


class PDFProcessor:
    """
    Text-layer extractor for PDF files.

    Attributes:
        max_pages: Maximum number of pages to read (0 means all).
        fallback_to_pymupdf: Retry with PyMuPDF when pdfplumber finds no text.

    Example:
        >>> processor = PDFProcessor()
        >>> text, metadata = processor.extract_text(pdf_bytes)
        >>> print(metadata["page_count"])
    """

    def __init__(
        self,
        max_pages: Optional[int] = None,
        fallback_to_pymupdf: Optional[bool] = None
    ) -> None:
        self.max_pages = (
            max_pages if max_pages is not None
            else get_config("input.pdf.max_pages", 0)
        )
        self.fallback_to_pymupdf = (
            fallback_to_pymupdf if fallback_to_pymupdf is not None
            else get_config("input.pdf.fallback_to_pymupdf", True)
        )

        self._check_dependencies()

        logger.debug(f"PDFProcessor initialized (max_pages={self.max_pages or 'all'})")

    def _check_dependencies(self) -> None:
        """
        Check which PDF libraries are available.

        Raises:
            InputError: If neither pdfplumber nor PyMuPDF is installed.
        """
        try:
            import pdfplumber
            self._pdfplumber = pdfplumber
        except ImportError:
            logger.debug("pdfplumber not available. Using PyMuPDF for PDF text.")
            self._pdfplumber = None

        try:
            import fitz  # PyMuPDF
            self._pymupdf = fitz
        except ImportError:
            logger.debug("PyMuPDF not available.")
            self._pymupdf = None

        if self._pdfplumber is None and self._pymupdf is None:
            raise InputError(
                "No PDF processing library available. "
                "Install pdfplumber or PyMuPDF."
            )

    def extract_text(self, data: bytes) -> Tuple[str, Dict[str, Any]]:
        """
        Extract the text layer of a PDF held in memory.

        Args:
            data: Raw PDF bytes.

        Returns:
            Tuple of (text, metadata). Text may be empty; emptiness is
            judged by the caller.

        Raises:
            TextExtractionError: If the file cannot be parsed as a PDF.
        """
        text = ""
        metadata: Dict[str, Any] = {"file_type": "pdf", "file_size_bytes": len(data)}

        if self._pdfplumber is not None:
            text, page_count = self._extract_with_pdfplumber(data)
            metadata["extractor"] = "pdfplumber"
            metadata["page_count"] = page_count

        if not text.strip() and self._pymupdf is not None and (
            self._pdfplumber is None or self.fallback_to_pymupdf
        ):
            text, page_count = self._extract_with_pymupdf(data)
            metadata["extractor"] = "pymupdf"
            metadata["page_count"] = page_count

        logger.info(
            f"Extracted {len(text)} characters from {metadata.get('page_count', 0)} "
            f"PDF page(s) using {metadata.get('extractor')}"
        )
        return text, metadata

    def _page_limit(self, page_count: int) -> int:
        if self.max_pages and page_count > self.max_pages:
            logger.warning(f"PDF has {page_count} pages, limiting to {self.max_pages}")
            return self.max_pages
        return page_count

    def _extract_with_pdfplumber(self, data: bytes) -> Tuple[str, int]:
        parts: List[str] = []
        try:
            with self._pdfplumber.open(io.BytesIO(data)) as pdf:
                limit = self._page_limit(len(pdf.pages))
                for page in pdf.pages[:limit]:
                    page_text = page.extract_text()
                    if page_text:
                        parts.append(page_text)
        except Exception as e:
            # pdfminer raises a variety of parser-specific exceptions
            logger.error(f"pdfplumber could not read PDF: {e}")
            raise TextExtractionError("pdf", str(e))
        return "\n".join(parts), limit

    def _extract_with_pymupdf(self, data: bytes) -> Tuple[str, int]:
        parts: List[str] = []
        try:
            doc = self._pymupdf.open(stream=data, filetype="pdf")
        except Exception as e:
            logger.error(f"PyMuPDF could not open PDF: {e}")
            raise TextExtractionError("pdf", str(e))

        try:
            limit = self._page_limit(doc.page_count)
            for page_num in range(limit):
                page_text = doc.load_page(page_num).get_text()
                if page_text:
                    parts.append(page_text)
        finally:
            doc.close()

        return "\n".join(parts), limit
