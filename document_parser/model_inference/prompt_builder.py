"""
Prompt Builder Module.

Merges a document-type template with extracted text. Templates contain
literal JSON examples, so placeholders are substituted with plain string
replacement rather than ``str.format``.
"""

from typing import Dict

TEXT_PLACEHOLDERS = ("{DOCUMENT_TEXT}", "{DOCUMENT_CONTENT}")
CONTENT_SECTION = "\n\nDocument Content:\n"


def build_prompt(template: str, text: str) -> str:
    """
    Build the instruction sent to the model.

    Every ``{DOCUMENT_TEXT}`` and ``{DOCUMENT_CONTENT}`` placeholder is
    replaced with ``text``. A template with neither placeholder gets the
    text appended under a "Document Content:" section, so the document
    is never dropped from the prompt.

    Args:
        template: Prompt template.
        text: Extracted document text.

    Returns:
        Final prompt.

    Example:
        >>> build_prompt("Extract the invoice fields.", "Invoice #123")
        'Extract the invoice fields.\\n\\nDocument Content:\\nInvoice #123'
    """
    if not any(placeholder in template for placeholder in TEXT_PLACEHOLDERS):
        return f"{template}{CONTENT_SECTION}{text}"

    prompt = template
    for placeholder in TEXT_PLACEHOLDERS:
        prompt = prompt.replace(placeholder, text)
    return prompt


def fill_placeholders(template: str, values: Dict[str, str]) -> str:
    """
    Replace ``{NAME}`` placeholders other than the document text.

    Used for template parameters such as ``{CHECKLIST_ITEMS}``; unknown
    placeholders are left as they are.
    """
    for name, value in values.items():
        template = template.replace("{" + name + "}", value)
    return template
