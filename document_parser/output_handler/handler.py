"""
Main Output Handler Module.

Writes pipeline results to disk. The format follows the file suffix:
``.xlsx`` goes through the ExcelExporter, anything else is written as
UTF-8 JSON.

Author: ML Engineering Team
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from config import get_config
from document_parser.utils.logger import get_logger
from document_parser.utils.helpers import ensure_directory
from document_parser.utils.exceptions import ExportError
from .excel_exporter import ExcelExporter

logger = get_logger(__name__)


class OutputHandler:
    """
    Unified output handler for pipeline results.

    Example:
        >>> handler = OutputHandler()
        >>> handler.save(result.to_dict(), "outputs/offers.xlsx")
        >>> handler.save(result.to_dict(), "outputs/offers.json")
    """

    def __init__(self, output_dir: Optional[Union[str, Path]] = None) -> None:
        self.output_dir = Path(output_dir or get_config("paths.output_dir", "outputs"))
        self._excel_exporter = None

    @property
    def excel_exporter(self) -> ExcelExporter:
        """Get or create the Excel exporter."""
        if self._excel_exporter is None:
            self._excel_exporter = ExcelExporter(self.output_dir)
        return self._excel_exporter

    def save(self, result: Dict[str, Any], path: Union[str, Path]) -> str:
        """
        Save a result dictionary.

        Args:
            result: Output of a pipeline operation's ``to_dict()``.
            path: Destination; ``.xlsx`` selects Excel, otherwise JSON.

        Returns:
            Path of the written file.

        Raises:
            ExportError: If the file cannot be written.
        """
        path = Path(path)
        if path.suffix.lower() == ".xlsx":
            return self.excel_exporter.export(result, path)
        return self.to_json(result, path)

    def to_json(self, result: Dict[str, Any], path: Union[str, Path]) -> str:
        path = Path(path)
        try:
            ensure_directory(path.parent)
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(result, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"JSON export failed: {e}")
            raise ExportError(str(path), str(e))

        logger.info(f"JSON file saved: {path}")
        return str(path)
