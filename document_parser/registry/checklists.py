"""
Verification Checklist Registry.

Maps a verification document type (e.g. "austrian_passport") to its
ordered checklist and to the ``<type>_verification_prompt.txt``
template used to ask the model about it.

Author: ML Engineering Team
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from document_parser.registry.defaults import DEFAULT_CHECKLISTS
from document_parser.utils.exceptions import ChecklistNotFoundError, ValidationError
from document_parser.utils.logger import get_logger

logger = get_logger(__name__)

PROMPT_SUFFIX = "_verification_prompt.txt"


@dataclass(frozen=True)
class ChecklistItem:
    """One boolean criterion of a checklist."""

    id: str
    label: str
    description: str = ""


@dataclass(frozen=True)
class VerificationChecklist:
    """Ordered checklist for one verification document type."""

    document_type: str
    name: str
    items: Tuple[ChecklistItem, ...]

    @classmethod
    def from_dict(cls, document_type: str, data: Dict[str, Any]) -> 'VerificationChecklist':
        """
        Build a checklist from its JSON form ``{name?, items: [...]}``.

        Raises:
            ValidationError: If items are missing, lack an id, or repeat one.
        """
        raw_items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(raw_items, list) or not raw_items:
            raise ValidationError(
                f"Checklist '{document_type}' has no items",
                {"document_type": document_type}
            )

        items = []
        seen = set()
        for raw in raw_items:
            item_id = raw.get("id") if isinstance(raw, dict) else None
            if not item_id:
                raise ValidationError(
                    f"Checklist '{document_type}' contains an item without id",
                    {"document_type": document_type}
                )
            if item_id in seen:
                raise ValidationError(
                    f"Checklist '{document_type}' repeats item id '{item_id}'",
                    {"document_type": document_type, "item": item_id}
                )
            seen.add(item_id)
            items.append(ChecklistItem(
                id=item_id,
                label=raw.get("label", item_id),
                description=raw.get("description", ""),
            ))

        return cls(
            document_type=document_type,
            name=data.get("name", document_type),
            items=tuple(items),
        )

    def render_items(self) -> str:
        """Render items as ``- id (label): description`` lines."""
        lines = []
        for item in self.items:
            line = f"- {item.id} ({item.label})"
            if item.description:
                line += f": {item.description}"
            lines.append(line)
        return "\n".join(lines)


class ChecklistRegistry:
    """
    Read-only table of verification checklists.

    Example:
        >>> checklists = ChecklistRegistry.from_config()
        >>> checklist = checklists.require("austrian_passport")
        >>> len(checklist.items)
        6
    """

    def __init__(
        self,
        checklists: List[VerificationChecklist],
        prompts_dir: Optional[Union[str, Path]] = None,
        templates: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Args:
            checklists: Checklists in display order.
            prompts_dir: Directory holding the verification prompt files.
            templates: In-memory prompt templates keyed by document type,
                consulted before ``prompts_dir``.
        """
        self._checklists = {c.document_type: c for c in checklists}
        self.prompts_dir = Path(prompts_dir) if prompts_dir else None
        self._templates = dict(templates or {})

    @classmethod
    def load(
        cls,
        source_path: Union[str, Path],
        prompts_dir: Optional[Union[str, Path]] = None
    ) -> 'ChecklistRegistry':
        """
        Load checklists from JSON, falling back to built-in defaults.

        The file maps document type to ``{name, items}``.
        """
        path = Path(source_path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ValidationError("Checklist file must contain an object", {"path": str(path)})
            checklists = [VerificationChecklist.from_dict(k, v) for k, v in raw.items()]
            logger.info(f"Loaded {len(checklists)} verification checklists from {path}")
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Could not load checklists from {path}, using defaults: {e}")
            checklists = cls.default_checklists()

        return cls(checklists, prompts_dir=prompts_dir)

    @classmethod
    def from_config(cls) -> 'ChecklistRegistry':
        """Build the registry from the paths in settings.yaml."""
        from config import get_config

        return cls.load(
            get_config("paths.checklists"),
            prompts_dir=get_config("paths.prompts_dir")
        )

    @staticmethod
    def default_checklists() -> List[VerificationChecklist]:
        return [VerificationChecklist.from_dict(k, v) for k, v in DEFAULT_CHECKLISTS.items()]

    def supported_types(self) -> List[str]:
        return list(self._checklists)

    def get(self, document_type: str) -> Optional[VerificationChecklist]:
        return self._checklists.get(document_type)

    def require(self, document_type: str) -> VerificationChecklist:
        """
        Raises:
            ChecklistNotFoundError: If no checklist exists for the type.
        """
        checklist = self._checklists.get(document_type)
        if checklist is None:
            raise ChecklistNotFoundError(document_type)
        return checklist

    def get_prompt_template(self, document_type: str) -> Optional[str]:
        """Return the verification prompt for a type, or None if missing."""
        if document_type in self._templates:
            return self._templates[document_type] or None
        if self.prompts_dir is None:
            return None

        path = self.prompts_dir / f"{document_type}{PROMPT_SUFFIX}"
        try:
            text = path.read_text(encoding='utf-8')
        except OSError as e:
            logger.error(f"Verification prompt for {document_type} could not be read: {e}")
            return None
        return text if text.strip() else None
