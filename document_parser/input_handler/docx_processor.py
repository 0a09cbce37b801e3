"""
DOCX Processor Module.

Raw text extraction from Word documents with python-docx. Paragraph
text comes first, table cells after it (row by row, tab-separated).
Content the extractor cannot represent as text, such as embedded
pictures, is reported as a warning rather than failing the call.

Author: ML Engineering Team
"""

import io
import zipfile
from typing import Any, Dict, List, Optional, Tuple

import docx
from docx.opc.exceptions import PackageNotFoundError
from lxml import etree

from config import get_config
from document_parser.utils.logger import get_logger
from document_parser.utils.exceptions import TextExtractionError

logger = get_logger(__name__)


class DOCXProcessor:
    """
    Text extractor for DOCX files.

    Attributes:
        include_tables: Append table cell text after the paragraphs.

    Example:
        >>> processor = DOCXProcessor()
        >>> text, warnings = processor.extract_text(docx_bytes)
    """

    def __init__(self, include_tables: Optional[bool] = None) -> None:
        self.include_tables = (
            include_tables if include_tables is not None
            else get_config("input.docx.include_tables", True)
        )

    def extract_text(self, data: bytes) -> Tuple[str, List[str], Dict[str, Any]]:
        """
        Extract raw text from a DOCX held in memory.

        Args:
            data: Raw DOCX bytes.

        Returns:
            Tuple of (text, warnings, metadata).

        Raises:
            TextExtractionError: If the bytes are not a readable DOCX package.
        """
        try:
            document = docx.Document(io.BytesIO(data))
        except (PackageNotFoundError, zipfile.BadZipFile, etree.XMLSyntaxError, KeyError, ValueError) as e:
            logger.error(f"Failed to open DOCX: {e}")
            raise TextExtractionError("docx", str(e))

        warnings: List[str] = []
        parts = [p.text for p in document.paragraphs if p.text.strip()]

        table_rows = 0
        if self.include_tables:
            for table in document.tables:
                for row in table.rows:
                    cells = [cell.text.strip() for cell in row.cells]
                    if any(cells):
                        parts.append("\t".join(cells))
                        table_rows += 1
        elif document.tables:
            warnings.append(f"Skipped {len(document.tables)} table(s)")

        image_count = len(document.inline_shapes)
        if image_count:
            warnings.append(f"Skipped {image_count} embedded image(s); images are not OCR'd")

        for warning in warnings:
            logger.warning(f"DOCX extraction: {warning}")

        metadata = {
            "file_type": "docx",
            "file_size_bytes": len(data),
            "paragraph_count": len(document.paragraphs),
            "table_rows": table_rows,
        }
        return "\n".join(parts), warnings, metadata
