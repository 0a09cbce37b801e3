"""
Main Input Handler Module.

TextExtractor turns a raw file buffer plus its declared format into
plain text, dispatching to the PDF, image (OCR) or DOCX processor. An
empty or whitespace-only result is reported as NoReadableText, never
returned as an empty success.

Usage:
    from document_parser.input_handler import TextExtractor

    extractor = TextExtractor()
    extracted = extractor.extract(pdf_bytes, "pdf")
    print(extracted.text)

Classes:
    ExtractionJob: One uploaded file awaiting processing
    ExtractedText: Text output of the extractor
    TextExtractor: Format dispatcher
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from document_parser.utils.logger import get_logger
from document_parser.utils.helpers import format_file_size, get_file_extension
from document_parser.utils.exceptions import NoReadableTextError, UnsupportedFormatError
from document_parser.ocr_engine import OCREngine

from .pdf_processor import PDFProcessor
from .image_processor import ImageProcessor
from .docx_processor import DOCXProcessor

logger = get_logger(__name__)


@dataclass
class ExtractionJob:
    """
    One uploaded file. Owned by the request that created it.

    Attributes:
        document_type_id: Declared document type.
        data: Raw file bytes.
        file_name: Original file name as uploaded.
    """

    document_type_id: str
    data: bytes
    file_name: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return get_file_extension(self.file_name)

    @classmethod
    def from_path(cls, path: Union[str, Path], document_type_id: str) -> 'ExtractionJob':
        path = Path(path)
        return cls(document_type_id=document_type_id, data=path.read_bytes(), file_name=path.name)

    def __repr__(self) -> str:
        return (
            f"ExtractionJob(file='{self.file_name}', type='{self.document_type_id}', "
            f"size={format_file_size(self.size)})"
        )


@dataclass
class ExtractedText:
    """
    Text recovered from one file.

    Attributes:
        text: Extracted text, never empty.
        source_format: Format the text was extracted from.
        warnings: Non-fatal converter warnings.
        metadata: Extractor details (page count, OCR engine, ...).
    """

    text: str
    source_format: str
    warnings: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.text)


class TextExtractor:
    """
    Dispatches extraction by declared format.

    Processors are created on first use, so a deployment without OCR
    can still extract PDFs and DOCX files.

    Attributes:
        SUPPORTED_FORMATS: Formats the extractor understands.

    Example:
        >>> extractor = TextExtractor()
        >>> extracted = extractor.extract(data, "png")
        >>> extracted.metadata["ocr_engine"]
        'tesseract'
    """

    PDF_FORMATS = ('pdf',)
    IMAGE_FORMATS = ('png', 'jpg', 'jpeg')
    DOCX_FORMATS = ('docx',)
    SUPPORTED_FORMATS = PDF_FORMATS + IMAGE_FORMATS + DOCX_FORMATS

    def __init__(
        self,
        ocr_engine: Optional[OCREngine] = None,
        pdf_processor: Optional[PDFProcessor] = None,
        image_processor: Optional[ImageProcessor] = None,
        docx_processor: Optional[DOCXProcessor] = None
    ) -> None:
        self._ocr_engine = ocr_engine
        self._pdf_processor = pdf_processor
        self._image_processor = image_processor
        self._docx_processor = docx_processor

    @property
    def ocr_engine(self) -> OCREngine:
        if self._ocr_engine is None:
            self._ocr_engine = OCREngine()
        return self._ocr_engine

    @property
    def pdf_processor(self) -> PDFProcessor:
        if self._pdf_processor is None:
            self._pdf_processor = PDFProcessor()
        return self._pdf_processor

    @property
    def image_processor(self) -> ImageProcessor:
        if self._image_processor is None:
            self._image_processor = ImageProcessor()
        return self._image_processor

    @property
    def docx_processor(self) -> DOCXProcessor:
        if self._docx_processor is None:
            self._docx_processor = DOCXProcessor()
        return self._docx_processor

    def extract(self, data: bytes, file_format: str) -> ExtractedText:
        """
        Extract plain text from a file buffer.

        Args:
            data: Raw file bytes.
            file_format: Declared format ("pdf", "png", "jpg", "jpeg",
                "docx"), with or without a leading dot.

        Returns:
            ExtractedText with non-empty text.

        Raises:
            UnsupportedFormatError: Format not handled.
            NoReadableTextError: Extraction produced no text.
            TextExtractionError: The file could not be parsed.
        """
        fmt = file_format.lower().lstrip(".")

        if fmt in self.PDF_FORMATS:
            text, metadata = self.pdf_processor.extract_text(data)
            warnings: List[str] = []
        elif fmt in self.IMAGE_FORMATS:
            text, metadata = self._extract_image(data, fmt)
            warnings = []
        elif fmt in self.DOCX_FORMATS:
            text, warnings, metadata = self.docx_processor.extract_text(data)
        else:
            raise UnsupportedFormatError(fmt)

        text = text.strip()
        if not text:
            logger.warning(f"No readable text in {fmt} file ({len(data)} bytes)")
            raise NoReadableTextError(fmt)

        logger.info(f"Extracted {len(text)} characters from {fmt} file")
        return ExtractedText(text=text, source_format=fmt, warnings=warnings, metadata=metadata)

    def extract_file(self, path: Union[str, Path], file_format: Optional[str] = None) -> ExtractedText:
        """
        Extract text from a file on disk.

        Args:
            path: File to read.
            file_format: Declared format; defaults to the file extension.
        """
        path = Path(path)
        return self.extract(path.read_bytes(), file_format or get_file_extension(path))

    def _extract_image(self, data: bytes, fmt: str):
        image, metadata = self.image_processor.load(data, fmt)
        result = self.ocr_engine.extract(image)
        metadata.update({
            "ocr_engine": result.engine,
            "ocr_languages": result.languages,
            "ocr_confidence": result.average_confidence,
        })
        return result.text, metadata
