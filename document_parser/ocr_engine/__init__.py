"""
OCR Engine Module.

Scoped OCR for image uploads:
    - OCREngine: backend selection and per-call session
    - TesseractBackend: pytesseract, multi-language
    - EasyOCRBackend: optional alternative backend
    - OCRResult: recognized text plus engine details
"""

from .engine import EasyOCRBackend, OCREngine
from .ocr_result import OCRResult
from .tesseract_backend import TesseractBackend

__all__ = ['OCREngine', 'OCRResult', 'TesseractBackend', 'EasyOCRBackend']
