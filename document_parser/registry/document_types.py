"""
Document Type Registry Module.

Holds one DocumentTypeDefinition per supported document class: allowed
formats, size limit, prompt template and, for multi-file types, the
file-count bounds. The registry is built explicitly and passed into the
pipeline; reads never take a lock, administrative edits replace the
definition table wholesale under a lock and are written back to the
JSON source.

Author: ML Engineering Team
"""

import json
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from document_parser.registry.defaults import DEFAULT_DOCUMENT_TYPES
from document_parser.utils.exceptions import (
    FileTooLargeError,
    UnsupportedDocumentTypeError,
    UnsupportedFormatError,
    ValidationError,
)
from document_parser.utils.helpers import get_file_extension
from document_parser.utils.logger import get_logger

logger = get_logger(__name__)

COMPARATORS = ("min", "max")


@dataclass(frozen=True)
class DocumentTypeDefinition:
    """
    Immutable description of one document type.

    Attributes:
        id: Stable identifier (e.g. "invoice").
        name: Display name.
        supported_formats: Allowed lowercase extensions without dot.
        max_file_size: Size limit in bytes.
        prompt_template: Template file name under the prompts directory.
        description: Free-text description.
        min_files: Minimum number of files for multi-file types.
        max_files: Maximum number of files for multi-file types.
        required_fields: Fields the confidence score is computed over.
            Empty when the type declares none.
        comparison_prompt_template: Template used to compare offers.
        comparison_rules: Parameter → "min" or "max" for offer ranking.
    """

    id: str
    name: str
    supported_formats: Tuple[str, ...]
    max_file_size: int
    prompt_template: str
    description: str = ""
    min_files: Optional[int] = None
    max_files: Optional[int] = None
    required_fields: Tuple[str, ...] = ()
    comparison_prompt_template: Optional[str] = None
    comparison_rules: Dict[str, str] = field(default_factory=dict, hash=False)

    @property
    def is_multi_file(self) -> bool:
        return self.min_files is not None or self.max_files is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DocumentTypeDefinition':
        """
        Build a definition from its JSON (camelCase) representation.

        Raises:
            ValidationError: If a mandatory key is missing or malformed.
        """
        missing = [
            key for key in ("id", "name", "supportedFormats", "maxFileSize")
            if key not in data
        ]
        if missing:
            raise ValidationError(
                f"Document type definition is missing fields: {', '.join(missing)}",
                {"definition": data.get("id"), "missing": missing}
            )

        rules = dict(data.get("comparisonRules") or {})
        bad_rules = {k: v for k, v in rules.items() if v not in COMPARATORS}
        if bad_rules:
            raise ValidationError(
                "Comparison rules must be 'min' or 'max'",
                {"definition": data["id"], "rules": bad_rules}
            )

        try:
            max_file_size = int(data["maxFileSize"])
        except (TypeError, ValueError):
            raise ValidationError(
                "maxFileSize must be an integer number of bytes",
                {"definition": data["id"], "maxFileSize": data["maxFileSize"]}
            )

        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            supported_formats=tuple(str(f).lower().lstrip(".") for f in data["supportedFormats"]),
            max_file_size=max_file_size,
            prompt_template=data.get("promptTemplate") or "",
            description=data.get("description", ""),
            min_files=data.get("minFiles"),
            max_files=data.get("maxFiles"),
            required_fields=tuple(data.get("requiredFields") or ()),
            comparison_prompt_template=data.get("comparisonPromptTemplate"),
            comparison_rules=rules,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Render the JSON (camelCase) representation."""
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "supportedFormats": list(self.supported_formats),
            "maxFileSize": self.max_file_size,
            "promptTemplate": self.prompt_template,
        }
        if self.min_files is not None:
            data["minFiles"] = self.min_files
        if self.max_files is not None:
            data["maxFiles"] = self.max_files
        if self.required_fields:
            data["requiredFields"] = list(self.required_fields)
        if self.comparison_prompt_template:
            data["comparisonPromptTemplate"] = self.comparison_prompt_template
        if self.comparison_rules:
            data["comparisonRules"] = dict(self.comparison_rules)
        return data


class DocumentTypeRegistry:
    """
    Read-mostly table of document type definitions.

    Attributes:
        source_path: JSON file administrative edits are persisted to.
        prompts_dir: Directory prompt template files are read from.

    Example:
        >>> registry = DocumentTypeRegistry.from_config()
        >>> registry.validate_file("rechnung.pdf", 120_000, "invoice")
        >>> template = registry.get_prompt_template("invoice")
    """

    def __init__(
        self,
        definitions: List[DocumentTypeDefinition],
        prompts_dir: Optional[Union[str, Path]] = None,
        source_path: Optional[Union[str, Path]] = None,
        templates: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Initialize the registry.

        Args:
            definitions: Definitions in display order.
            prompts_dir: Directory holding prompt template files.
            source_path: JSON file to persist administrative edits to.
                Without one, edits stay in memory.
            templates: In-memory templates keyed by template reference,
                consulted before ``prompts_dir``.
        """
        self.prompts_dir = Path(prompts_dir) if prompts_dir else None
        self.source_path = Path(source_path) if source_path else None
        self._templates = dict(templates or {})
        self._lock = threading.Lock()
        self._definitions: Dict[str, DocumentTypeDefinition] = {}
        for definition in definitions:
            if definition.id in self._definitions:
                raise ValidationError(
                    f"Duplicate document type id: {definition.id}",
                    {"id": definition.id}
                )
            self._definitions[definition.id] = definition

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def load(
        cls,
        source_path: Union[str, Path],
        prompts_dir: Optional[Union[str, Path]] = None
    ) -> 'DocumentTypeRegistry':
        """
        Load definitions from a JSON file, falling back to built-in defaults.

        Args:
            source_path: JSON file with a top-level ``documentTypes`` list.
            prompts_dir: Directory holding prompt template files.

        Returns:
            Populated registry.
        """
        path = Path(source_path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
            entries = raw.get("documentTypes") if isinstance(raw, dict) else raw
            if not isinstance(entries, list):
                raise ValidationError("documentTypes must be a list", {"path": str(path)})
            definitions = [DocumentTypeDefinition.from_dict(entry) for entry in entries]
            logger.info(f"Loaded {len(definitions)} document types from {path}")
        except (OSError, json.JSONDecodeError, ValidationError, AttributeError) as e:
            logger.warning(f"Could not load document types from {path}, using defaults: {e}")
            definitions = cls.default_definitions()

        return cls(definitions, prompts_dir=prompts_dir, source_path=path)

    @classmethod
    def from_config(cls) -> 'DocumentTypeRegistry':
        """Build the registry from the paths in settings.yaml."""
        from config import get_config

        return cls.load(
            get_config("paths.document_types"),
            prompts_dir=get_config("paths.prompts_dir")
        )

    @staticmethod
    def default_definitions() -> List[DocumentTypeDefinition]:
        return [DocumentTypeDefinition.from_dict(entry) for entry in DEFAULT_DOCUMENT_TYPES]

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def all(self) -> List[DocumentTypeDefinition]:
        return list(self._definitions.values())

    def exists(self, document_type_id: str) -> bool:
        return document_type_id in self._definitions

    def get(self, document_type_id: str) -> Optional[DocumentTypeDefinition]:
        """Return the definition, or None if the id is not registered."""
        return self._definitions.get(document_type_id)

    def require(self, document_type_id: str) -> DocumentTypeDefinition:
        """
        Return the definition or raise.

        Raises:
            UnsupportedDocumentTypeError: If the id is not registered.
        """
        definition = self._definitions.get(document_type_id)
        if definition is None:
            raise UnsupportedDocumentTypeError(document_type_id)
        return definition

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate_file(self, file_name: str, size: int, document_type_id: str) -> None:
        """
        Validate one file against a document type.

        Checks run in a fixed order: type exists, size within limit,
        extension allowed.

        Args:
            file_name: Original file name (the extension is taken from it).
            size: File size in bytes.
            document_type_id: Target document type.

        Raises:
            UnsupportedDocumentTypeError: Unknown document type.
            FileTooLargeError: ``size`` exceeds the type's limit.
            UnsupportedFormatError: Extension not in the allowed set.
        """
        definition = self.require(document_type_id)

        if size > definition.max_file_size:
            raise FileTooLargeError(size, definition.max_file_size)

        extension = get_file_extension(file_name)
        if extension not in definition.supported_formats:
            raise UnsupportedFormatError(extension, list(definition.supported_formats))

    def is_valid_file(
        self,
        file_name: str,
        size: int,
        document_type_id: str
    ) -> Tuple[bool, Optional[str]]:
        """
        Non-raising form of validate_file.

        Returns:
            ``(True, None)`` or ``(False, reason)``.
        """
        try:
            self.validate_file(file_name, size, document_type_id)
        except (UnsupportedDocumentTypeError, FileTooLargeError, UnsupportedFormatError) as e:
            return False, e.message
        return True, None

    def validate_file_count(self, document_type_id: str, count: int) -> None:
        """
        Check a batch size against the type's file-count bounds.

        Raises:
            ValidationError: Count outside ``[min_files, max_files]``.
        """
        definition = self.require(document_type_id)
        if count < 1:
            raise ValidationError("No files uploaded", {"document_type": document_type_id})
        if definition.min_files is not None and count < definition.min_files:
            raise ValidationError(
                f"{definition.name} requires at least {definition.min_files} files",
                {"document_type": document_type_id, "count": count}
            )
        if definition.max_files is not None and count > definition.max_files:
            raise ValidationError(
                f"{definition.name} accepts at most {definition.max_files} files",
                {"document_type": document_type_id, "count": count}
            )

    # =========================================================================
    # PROMPT TEMPLATES
    # =========================================================================

    def get_prompt_template(self, document_type_id: str) -> Optional[str]:
        """
        Resolve the extraction prompt template of a type.

        Returns:
            Template text, or None when the type is unknown, declares no
            template, or the template cannot be read. Callers treat None
            as a configuration error.
        """
        definition = self.get(document_type_id)
        if definition is None:
            return None
        return self._read_template(definition.prompt_template)

    def get_comparison_prompt_template(self, document_type_id: str) -> Optional[str]:
        """Resolve the comparison prompt template of a multi-file type."""
        definition = self.get(document_type_id)
        if definition is None or not definition.comparison_prompt_template:
            return None
        return self._read_template(definition.comparison_prompt_template)

    def _read_template(self, reference: str) -> Optional[str]:
        if not reference:
            return None
        if reference in self._templates:
            return self._templates[reference] or None
        if self.prompts_dir is None:
            return None

        path = self.prompts_dir / reference
        try:
            text = path.read_text(encoding='utf-8')
        except OSError as e:
            logger.error(f"Prompt template {reference} could not be read: {e}")
            return None
        return text if text.strip() else None

    # =========================================================================
    # ADMINISTRATION
    # =========================================================================

    def add(self, definition: DocumentTypeDefinition) -> None:
        """
        Register a new document type.

        Raises:
            ValidationError: If the id already exists.
        """
        with self._lock:
            if definition.id in self._definitions:
                raise ValidationError(
                    f"Document type with id '{definition.id}' already exists",
                    {"id": definition.id}
                )
            table = dict(self._definitions)
            table[definition.id] = definition
            self._commit(table)
        logger.info(f"Added document type: {definition.id}")

    def update(self, document_type_id: str, **changes: Any) -> DocumentTypeDefinition:
        """
        Replace a definition with a copy carrying ``changes``.

        Args:
            document_type_id: Type to update.
            **changes: Dataclass field names and new values. ``id`` cannot
                be changed.

        Returns:
            The new definition.

        Raises:
            UnsupportedDocumentTypeError: If the id is not registered.
            ValidationError: If ``changes`` contains unknown fields or ``id``.
        """
        if "id" in changes:
            raise ValidationError("Document type id cannot be changed", {"id": document_type_id})

        with self._lock:
            current = self.require(document_type_id)
            try:
                updated = replace(current, **changes)
            except TypeError as e:
                raise ValidationError(f"Invalid document type update: {e}", {"id": document_type_id})
            table = dict(self._definitions)
            table[document_type_id] = updated
            self._commit(table)
        logger.info(f"Updated document type: {document_type_id}")
        return updated

    def remove(self, document_type_id: str) -> None:
        """
        Delete a document type.

        Raises:
            UnsupportedDocumentTypeError: If the id is not registered.
        """
        with self._lock:
            self.require(document_type_id)
            table = {k: v for k, v in self._definitions.items() if k != document_type_id}
            self._commit(table)
        logger.info(f"Removed document type: {document_type_id}")

    def _commit(self, table: Dict[str, DocumentTypeDefinition]) -> None:
        """Persist ``table`` (when a source file is set) and swap it in."""
        if self.source_path is not None:
            payload = {
                "documentTypes": [d.to_dict() for d in table.values()],
                "lastUpdated": datetime.now().isoformat(timespec="seconds"),
            }
            self.source_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.source_path, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
        self._definitions = table

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, document_type_id: str) -> bool:
        return self.exists(document_type_id)
