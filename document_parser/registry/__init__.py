"""
Registry Module.

Read-only configuration tables injected into the pipeline:
    - DocumentTypeRegistry: formats, size limits, templates per type
    - ChecklistRegistry: verification checklists per document type
"""

from .document_types import DocumentTypeDefinition, DocumentTypeRegistry
from .checklists import ChecklistItem, ChecklistRegistry, VerificationChecklist

__all__ = [
    'DocumentTypeDefinition',
    'DocumentTypeRegistry',
    'ChecklistItem',
    'ChecklistRegistry',
    'VerificationChecklist',
]
