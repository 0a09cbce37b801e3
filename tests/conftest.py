"""
Pytest Configuration and Fixtures
==================================
Shared fixtures for the document parser test suite. Everything runs
offline: the model is replaced by StaticGateway, documents are built in
memory with PyMuPDF, python-docx and Pillow.
"""

import io
from typing import Callable, List, Optional, Union

import fitz  # PyMuPDF
import docx
import pytest
from PIL import Image

from document_parser.model_inference.gateway import GatewayOutcome, ModelGateway, ReplyStatus
from document_parser.registry import (
    ChecklistRegistry,
    DocumentTypeDefinition,
    DocumentTypeRegistry,
    VerificationChecklist,
)
from document_parser.registry.defaults import LOAN_OFFER_COMPARISON_RULES, MB


# =============================================================================
# TEST DOUBLES
# =============================================================================

class StaticGateway(ModelGateway):
    """
    Gateway returning scripted replies in order.

    A reply may be a string (success) or a GatewayOutcome (any status).
    Every prompt sent is recorded in ``prompts``.
    """

    def __init__(self, replies: Optional[List[Union[str, GatewayOutcome]]] = None):
        super().__init__(model="static-test-model", max_tokens=100, temperature=0.0)
        self.replies = list(replies or [])
        self.prompts: List[str] = []

    def _send(self, system_instruction: str, prompt: str) -> GatewayOutcome:
        self.prompts.append(prompt)
        if not self.replies:
            return GatewayOutcome.failure(ReplyStatus.ERROR, "no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, GatewayOutcome):
            return reply
        return GatewayOutcome.success(reply)


# =============================================================================
# ENVIRONMENT FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def mock_environment(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-openai-key")


# =============================================================================
# DOCUMENT FACTORIES
# =============================================================================

def make_pdf(*pages: str) -> bytes:
    """Build a PDF with one page per argument; empty strings give blank pages."""
    document = fitz.open()
    for text in pages:
        page = document.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=11)
    data = document.tobytes()
    document.close()
    return data


def make_docx(paragraphs: List[str], table: Optional[List[List[str]]] = None) -> bytes:
    """Build a DOCX with the given paragraphs and an optional table."""
    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    if table:
        grid = document.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, value in enumerate(row):
                grid.cell(r, c).text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def make_image(mode: str = "RGB", size=(120, 60), fmt: str = "PNG") -> bytes:
    color = (255, 255, 255, 0) if mode == "RGBA" else "white"
    image = Image.new(mode, size, color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def pdf_factory() -> Callable[..., bytes]:
    return make_pdf


@pytest.fixture
def docx_factory() -> Callable[..., bytes]:
    return make_docx


@pytest.fixture
def image_factory() -> Callable[..., bytes]:
    return make_image


# =============================================================================
# REGISTRY FIXTURES
# =============================================================================

TEMPLATES = {
    "invoice_prompt.txt": "Extract vendorName, invoiceNumber, invoiceDate and totalAmount as JSON.",
    "offer_prompt.txt": "Extract the loan offer as JSON.\n\n{DOCUMENT_TEXT}",
    "offer_comparison_prompt.txt": "Compare these offers:\n{DOCUMENT_TEXT}",
    "budget_prompt.txt": "Haushaltsrechnung:\n{DOCUMENT_CONTENT}",
}


@pytest.fixture
def definitions() -> List[DocumentTypeDefinition]:
    loan_fields = ["anbieter", "kreditbetrag", "sollzinssatz", "effektivzinssatz"]
    raw = [
        {
            "id": "invoice",
            "name": "Rechnung",
            "supportedFormats": ["pdf", "png", "jpg", "jpeg"],
            "maxFileSize": 10 * MB,
            "promptTemplate": "invoice_prompt.txt",
            "requiredFields": ["vendorName", "invoiceNumber", "invoiceDate", "totalAmount"],
        },
        {
            "id": "angebotsvergleich",
            "name": "Angebotsvergleich",
            "supportedFormats": ["pdf"],
            "maxFileSize": 15 * MB,
            "promptTemplate": "offer_prompt.txt",
            "comparisonPromptTemplate": "offer_comparison_prompt.txt",
            "minFiles": 2,
            "maxFiles": 3,
            "requiredFields": loan_fields,
            "comparisonRules": LOAN_OFFER_COMPARISON_RULES,
        },
        {
            "id": "angebotserfassung",
            "name": "Angebotserfassung",
            "supportedFormats": ["pdf"],
            "maxFileSize": 15 * MB,
            "promptTemplate": "offer_prompt.txt",
            "minFiles": 1,
            "maxFiles": 3,
            "requiredFields": loan_fields,
        },
        {
            "id": "haushaltsrechnung",
            "name": "Haushaltsrechnung",
            "supportedFormats": ["pdf", "docx"],
            "maxFileSize": 2 * MB,
            "promptTemplate": "budget_prompt.txt",
        },
        {
            "id": "document_verification",
            "name": "Dokumentenprüfung",
            "supportedFormats": ["pdf", "png", "jpg", "jpeg"],
            "maxFileSize": 15 * MB,
            "promptTemplate": "",
            "minFiles": 1,
            "maxFiles": 10,
        },
    ]
    return [DocumentTypeDefinition.from_dict(entry) for entry in raw]


@pytest.fixture
def registry(definitions) -> DocumentTypeRegistry:
    return DocumentTypeRegistry(definitions, templates=TEMPLATES)


@pytest.fixture
def passport_checklist() -> VerificationChecklist:
    return VerificationChecklist.from_dict("austrian_passport", {
        "name": "Österreichischer Reisepass",
        "items": [
            {"id": "document_type", "label": "Dokumenttyp", "description": "Reisepass der Republik Österreich"},
            {"id": "full_name", "label": "Name"},
            {"id": "date_of_birth", "label": "Geburtsdatum"},
            {"id": "passport_number", "label": "Passnummer"},
            {"id": "expiry_date", "label": "Gültig bis"},
        ],
    })


@pytest.fixture
def checklists(passport_checklist) -> ChecklistRegistry:
    return ChecklistRegistry(
        [passport_checklist],
        templates={"austrian_passport": "Prüfe:\n{CHECKLIST_ITEMS}\n\nDokument:\n{DOCUMENT_TEXT}"},
    )


@pytest.fixture
def gateway_factory() -> Callable[..., StaticGateway]:
    """Build a StaticGateway from scripted replies."""
    return StaticGateway
