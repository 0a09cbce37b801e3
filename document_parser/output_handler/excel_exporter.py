"""
Excel Exporter Module.

Writes pipeline results to Excel workbooks with openpyxl. The workbook
layout follows the result shape:

    - single extraction: one field/value sheet
    - comparison: offers side by side plus a best-offer sheet
    - registration: one row per offer
    - verification: one row per checklist item

Author: ML Engineering Team
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from config import get_config
from document_parser.utils.logger import get_logger
from document_parser.utils.helpers import ensure_directory, generate_timestamp
from document_parser.utils.exceptions import ExportError, ValidationError

logger = get_logger(__name__)

MAX_COLUMN_WIDTH = 60


class ExcelExporter:
    """
    Exports result dictionaries to Excel format.

    Attributes:
        output_dir: Default directory for output files.
        sheet_names: Sheet titles per section.
        header_color: Header fill color (hex RGB).
        auto_fit_columns: Whether column widths follow content.

    Example:
        >>> exporter = ExcelExporter()
        >>> path = exporter.export(result.to_dict(), "offers.xlsx")
    """

    def __init__(self, output_dir: Optional[Union[str, Path]] = None) -> None:
        self.output_dir = Path(output_dir or get_config("paths.output_dir", "outputs"))
        self.sheet_names = {
            "extraction": "Extraction",
            "offers": "Offers",
            "comparison": "Best Offers",
            "verification": "Verification",
        }
        self.sheet_names.update(get_config("output.excel.sheet_names", {}) or {})
        self.header_color = get_config("output.excel.header_color", "4472C4")
        self.auto_fit_columns = get_config("output.excel.auto_fit_columns", True)

        logger.debug(f"ExcelExporter initialized (output_dir: {self.output_dir})")

    def export(self, result: Dict[str, Any], filename: Optional[Union[str, Path]] = None) -> str:
        """
        Export one pipeline result to an Excel file.

        Args:
            result: Output of ``to_dict()`` of any pipeline operation.
            filename: Output path. Relative names without a directory
                land in ``output_dir``; None generates a timestamped name.

        Returns:
            Path to the created Excel file.

        Raises:
            ValidationError: If the result shape is not recognised.
            ExportError: If the workbook cannot be written.
        """
        filepath = self._resolve_path(filename)

        workbook = Workbook()
        workbook.remove(workbook.active)

        if "documents" in result:
            self._verification_sheet(workbook, result)
        elif "comparison" in result:
            self._offers_sheet(workbook, result.get("individualOffers", []))
            self._comparison_sheet(workbook, result["comparison"])
        elif "individualOffers" in result:
            self._offers_sheet(workbook, result["individualOffers"])
        elif "extractedData" in result:
            self._extraction_sheet(workbook, result)
        else:
            raise ValidationError("Unrecognised result shape for Excel export",
                                  {"keys": sorted(result)})

        try:
            ensure_directory(filepath.parent)
            workbook.save(filepath)
        except OSError as e:
            logger.error(f"Excel export failed: {e}")
            raise ExportError(str(filepath), str(e))

        logger.info(f"Excel file saved: {filepath}")
        return str(filepath)

    def _resolve_path(self, filename: Optional[Union[str, Path]]) -> Path:
        if filename is None:
            return self.output_dir / f"results_{generate_timestamp()}.xlsx"
        path = Path(filename)
        if path.parent == Path("."):
            return self.output_dir / path
        return path

    # =========================================================================
    # Sheets
    # =========================================================================

    def _extraction_sheet(self, workbook: Workbook, result: Dict[str, Any]) -> None:
        sheet = workbook.create_sheet(self.sheet_names["extraction"])
        rows = [[name, value] for name, value in result.get("extractedData", {}).items()]
        rows.append([])
        rows.append(["documentType", result.get("documentType")])
        rows.append(["confidence", result.get("confidence")])
        rows.append(["processingTimeMs", result.get("processingTimeMs")])
        self._write_table(sheet, ["Field", "Value"], rows)

    def _offers_sheet(self, workbook: Workbook, offers: List[Dict[str, Any]]) -> None:
        sheet = workbook.create_sheet(self.sheet_names["offers"])
        columns: List[str] = []
        for offer in offers:
            for name in offer:
                if name not in columns:
                    columns.append(name)
        rows = [[offer.get(name) for name in columns] for offer in offers]
        self._write_table(sheet, columns, rows)

    def _comparison_sheet(self, workbook: Workbook, comparison: Dict[str, Any]) -> None:
        sheet = workbook.create_sheet(self.sheet_names["comparison"])
        offers = comparison.get("offers", {})
        best = {entry["parameter"]: entry for entry in comparison.get("bestOffer", [])}

        offer_ids = list(offers)
        headers = ["Parameter"] + offer_ids + ["Best Offer", "Reason"]
        rows = []
        for parameter in comparison.get("parameters", []):
            entry = best.get(parameter, {})
            row = [parameter]
            row.extend(offers[offer_id].get(parameter) for offer_id in offer_ids)
            row.extend([entry.get("offerId"), entry.get("reason")])
            rows.append(row)
        self._write_table(sheet, headers, rows)

    def _verification_sheet(self, workbook: Workbook, result: Dict[str, Any]) -> None:
        sheet = workbook.create_sheet(self.sheet_names["verification"])
        headers = ["File", "Document Type", "Item", "Label", "Passed", "Reason"]
        rows = []
        for document in result.get("documents", []):
            for item in document.get("items", []):
                rows.append([
                    document.get("fileName"),
                    document.get("documentType"),
                    item.get("id"),
                    item.get("label"),
                    "yes" if item.get("passed") else "no",
                    item.get("reason"),
                ])
        rows.append([])
        rows.append(["Overall verified", "yes" if result.get("overallVerified") else "no"])
        self._write_table(sheet, headers, rows)

    # =========================================================================
    # Formatting
    # =========================================================================

    @staticmethod
    def _cell_value(value: Any) -> Any:
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False)
        return value

    def _write_table(self, sheet, headers: Sequence[str], rows: List[List[Any]]) -> None:
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color=self.header_color, end_color=self.header_color, fill_type="solid")
        thin = Side(style='thin')
        border = Border(left=thin, right=thin, top=thin, bottom=thin)

        for col, header in enumerate(headers, 1):
            cell = sheet.cell(row=1, column=col, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal="center", vertical="center")
            cell.border = border

        for row_num, row in enumerate(rows, 2):
            for col, value in enumerate(row, 1):
                cell = sheet.cell(row=row_num, column=col, value=self._cell_value(value))
                cell.border = border

        if self.auto_fit_columns:
            for col in range(1, sheet.max_column + 1):
                width = max(
                    (len(str(cell.value)) for cell in sheet[get_column_letter(col)] if cell.value is not None),
                    default=8
                )
                sheet.column_dimensions[get_column_letter(col)].width = min(width + 2, MAX_COLUMN_WIDTH)

        sheet.freeze_panes = 'A2'
