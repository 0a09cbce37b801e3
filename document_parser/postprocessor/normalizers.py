"""
Data Normalizers Module.

Normalization of the date and amount values models return for loan
offers and invoices:
    - DateNormalizer: German/ISO date strings → datetime.date
    - AmountNormalizer: "250.000,00 €", "3,2 %", 450 → float

Author: ML Engineering Team
"""

import re
from datetime import date, datetime
from typing import Any, List, Optional

from dateutil import parser as date_parser

from config import get_config
from document_parser.utils.logger import get_logger

logger = get_logger(__name__)


class DateNormalizer:
    """
    Parses date strings in a fixed list of formats, then with dateutil.

    The dateutil fallback is not fuzzy and requires at least two digit
    groups, so durations such as "10 Jahre" or a bare year are never
    mistaken for dates.

    Attributes:
        input_formats: strptime formats tried in order.

    Example:
        >>> normalizer = DateNormalizer()
        >>> normalizer.parse("01.01.2027")
        datetime.date(2027, 1, 1)
        >>> normalizer.normalize("15/03/2024")
        "2024-03-15"
        >>> normalizer.parse("10 Jahre") is None
        True
    """

    DEFAULT_FORMATS = ["%d.%m.%Y", "%Y-%m-%d", "%d/%m/%Y"]
    DIGIT_GROUPS = re.compile(r'\d+')

    def __init__(self, input_formats: Optional[List[str]] = None) -> None:
        self.input_formats = input_formats or get_config(
            "postprocessing.date.input_formats", self.DEFAULT_FORMATS
        )

    def parse(self, value: Any) -> Optional[date]:
        """
        Parse a date-like value.

        Args:
            value: String, date or datetime.

        Returns:
            The date, or None if the value is not a recognizable date.
        """
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if not isinstance(value, str) or not value.strip():
            return None

        date_str = ' '.join(value.split())

        for fmt in self.input_formats:
            try:
                return datetime.strptime(date_str, fmt).date()
            except ValueError:
                continue

        if len(self.DIGIT_GROUPS.findall(date_str)) < 2:
            return None

        try:
            return date_parser.parse(date_str, dayfirst=True).date()
        except (ValueError, OverflowError):
            logger.debug(f"Could not parse date: {date_str}")
            return None

    def normalize(self, value: Any, output_format: str = "%Y-%m-%d") -> Optional[str]:
        parsed = self.parse(value)
        return parsed.strftime(output_format) if parsed else None

    def is_valid_date(self, value: Any) -> bool:
        return self.parse(value) is not None

    @staticmethod
    def whole_years_between(start: date, end: date) -> int:
        """
        Full years from ``start`` to ``end``; negative if ``end`` is earlier.

        Example:
            >>> DateNormalizer.whole_years_between(date(2020, 1, 1), date(2027, 1, 1))
            7
        """
        years = end.year - start.year
        if (end.month, end.day) < (start.month, start.day):
            years -= 1
        return years


class AmountNormalizer:
    """
    Converts amount-like values to float.

    Handles currency symbols and codes, percent signs, German
    ("1.234,56", "250.000") and English ("1,234.56") separators.

    Example:
        >>> normalizer = AmountNormalizer()
        >>> normalizer.to_float("€ 250.000,00")
        250000.0
        >>> normalizer.to_float("3,25 %")
        3.25
    """

    CURRENCY_SYMBOLS = ['$', '€', '£', '¥', '₹', 'CHF']
    CURRENCY_CODES = ['EUR', 'USD', 'GBP', 'CHF']
    THOUSANDS_ONLY = re.compile(r'^-?\d{1,3}([.,]\d{3})+$')

    def to_float(self, value: Any) -> Optional[float]:
        """
        Convert a value to float.

        Returns:
            Float value, or None if the value is not numeric.
        """
        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if not isinstance(value, str):
            return None

        amount_str = self._clean_amount_string(value)
        if not amount_str:
            return None

        amount_str = self._to_dot_decimal(amount_str)
        try:
            return float(amount_str)
        except ValueError:
            logger.debug(f"Could not parse amount: {value}")
            return None

    def normalize(self, value: Any) -> Optional[str]:
        number = self.to_float(value)
        return f"{number:.2f}" if number is not None else None

    def _clean_amount_string(self, amount_str: str) -> str:
        for symbol in self.CURRENCY_SYMBOLS:
            amount_str = amount_str.replace(symbol, '')
        for code in self.CURRENCY_CODES:
            amount_str = re.sub(rf'\b{code}\b', '', amount_str, flags=re.IGNORECASE)
        amount_str = amount_str.replace('%', '')
        # Keep only digits, separators and sign
        return re.sub(r'[^\d,.\-]', '', amount_str)

    def _to_dot_decimal(self, amount_str: str) -> str:
        # Only thousands groups ("250.000", "1,250,000"); "0.500" stays a decimal
        if self.THOUSANDS_ONLY.match(amount_str) and not amount_str.lstrip('-').startswith('0'):
            separators = set(re.findall(r'[.,]', amount_str))
            if len(separators) == 1:
                return amount_str.replace('.', '').replace(',', '')

        comma_pos = amount_str.rfind(',')
        dot_pos = amount_str.rfind('.')

        if comma_pos > dot_pos:
            # German: dot thousands, comma decimal
            return amount_str.replace('.', '').replace(',', '.')
        # English: comma thousands, dot decimal
        return amount_str.replace(',', '')
