"""
Output Handler Module.

This module provides functionality for:
    - Loan offer persistence (SQLite)
    - Excel workbook export
    - JSON result files
"""

from .handler import OutputHandler
from .excel_exporter import ExcelExporter
from .database_handler import LoanOfferStore

__all__ = ['OutputHandler', 'ExcelExporter', 'LoanOfferStore']
