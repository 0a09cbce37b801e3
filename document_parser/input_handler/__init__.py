"""
Input Handler Module.

Text extraction from uploaded files:
    - TextExtractor: format dispatcher (pdf, png, jpg, jpeg, docx)
    - PDFProcessor: pdfplumber / PyMuPDF text layer
    - ImageProcessor: Pillow loading and normalization for OCR
    - DOCXProcessor: python-docx raw text
    - UploadStorage: temporary staging of uploads
"""

from .handler import ExtractedText, ExtractionJob, TextExtractor
from .pdf_processor import PDFProcessor
from .image_processor import ImageProcessor
from .docx_processor import DOCXProcessor
from .storage import UploadStorage

__all__ = [
    'TextExtractor',
    'ExtractedText',
    'ExtractionJob',
    'PDFProcessor',
    'ImageProcessor',
    'DOCXProcessor',
    'UploadStorage',
]
