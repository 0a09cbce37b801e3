"""
Document Parser - Source Package.

This package contains the document processing pipeline that turns
uploaded files (contracts, invoices, loan offers, identity documents)
into validated, scored, structured records with the help of a large
language model.

Modules:
    - input_handler: PDF, image and DOCX text extraction, upload staging
    - ocr_engine: Scoped OCR engine for image inputs
    - registry: Document type and verification checklist tables
    - model_inference: Prompt building and the model gateway
    - postprocessor: Reply parsing, confidence scoring, normalization
    - aggregation: Offer comparison and batch registration
    - evaluation: Checklist-based document verification
    - output_handler: Persistence and result export

Architecture:
    Input → Text Extraction → Prompt → Model Gateway → Parse/Validate
                                                          ↓
                              Confidence | Aggregation | Verification
"""

__version__ = "1.0.0"
__author__ = "ML Engineering Team"

__all__ = [
    'input_handler',
    'ocr_engine',
    'registry',
    'model_inference',
    'postprocessor',
    'aggregation',
    'evaluation',
    'output_handler',
    'pipeline',
    'utils'
]
