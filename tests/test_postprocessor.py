"""Tests for reply parsing, confidence scoring and normalization."""

from datetime import date

import pytest

from document_parser.postprocessor import (
    AmountNormalizer,
    ConfidenceScorer,
    DateNormalizer,
    RecordValidator,
    get_object,
    parse_reply,
    strip_fences,
)
from document_parser.utils.exceptions import InvalidResponseFormatError

INVOICE_FIELDS = ["vendorName", "invoiceNumber", "invoiceDate", "totalAmount"]


@pytest.fixture
def scorer():
    return ConfidenceScorer(required_fields={"invoice": INVOICE_FIELDS, "budget": []})


class TestParseReply:
    """Tests for parse_reply."""

    def test_plain_object(self):
        assert parse_reply('{"vendorName": "Acme"}') == {"vendorName": "Acme"}

    def test_json_fence(self):
        reply = '```json\n{"totalAmount": 450}\n```'

        assert parse_reply(reply) == {"totalAmount": 450}

    def test_bare_fence(self):
        assert parse_reply('```\n{"a": 1}\n```') == {"a": 1}

    def test_prose_around_object(self):
        reply = 'Here is the data:\n{"a": {"b": [1, 2, {"c": null}]}}\nLet me know!'

        assert parse_reply(reply) == {"a": {"b": [1, 2, {"c": None}]}}

    def test_nested_braces_are_kept(self):
        reply = '```json\n{"outer": {"inner": {"deep": "}"}}}\n```'

        assert parse_reply(reply)["outer"]["inner"]["deep"] == "}"

    @pytest.mark.parametrize("reply", ["[1, 2, 3]", "null", '"just a string"', "42"])
    def test_non_object_rejected(self, reply):
        with pytest.raises(InvalidResponseFormatError) as exc_info:
            parse_reply(reply)

        assert exc_info.value.message.startswith("Invalid response format from model: expected a JSON object")

    @pytest.mark.parametrize("reply", ["", "I could not read the document.", "{'single': 'quotes'}", "{broken"])
    def test_invalid_json_rejected(self, reply):
        with pytest.raises(InvalidResponseFormatError) as exc_info:
            parse_reply(reply)

        assert exc_info.value.kind == "InvalidResponseFormat"

    def test_non_text_rejected(self):
        with pytest.raises(InvalidResponseFormatError):
            parse_reply(None)

    def test_strip_fences_only_touches_ends(self):
        assert strip_fences("  ```json\n{}\n```  ") == "{}"


class TestConfidenceScorer:
    """Tests for ConfidenceScorer."""

    def test_three_of_four_required(self, scorer):
        record = {"vendorName": "Acme", "invoiceNumber": "123", "invoiceDate": None, "totalAmount": 450}

        assert scorer.score(record, "invoice") == 0.75

    def test_extras_add_bonus(self, scorer):
        record = {"vendorName": "Acme", "invoiceNumber": None, "currency": "EUR"}

        assert scorer.score(record, "invoice") == pytest.approx(0.375)

    def test_score_is_clamped(self, scorer):
        record = {name: "x" for name in INVOICE_FIELDS}
        record.update({f"extra{i}": i for i in range(20)})

        assert scorer.score(record, "invoice") == 1.0

    def test_filling_a_field_never_lowers_score(self, scorer):
        record = {name: None for name in INVOICE_FIELDS}
        previous = scorer.score(record, "invoice")
        for name in INVOICE_FIELDS:
            record[name] = "value"
            current = scorer.score(record, "invoice")
            assert current >= previous
            previous = current

    def test_empty_record(self, scorer):
        assert scorer.score({}, "invoice") == 0.0
        assert scorer.score({}, "budget") == 0.0

    def test_type_without_required_fields(self, scorer):
        record = {"einnahmen": 3000, "ausgaben": "", "notiz": None, "posten": [1]}

        assert scorer.score(record, "budget") == 0.5

    def test_required_fields_from_registry(self, registry):
        scorer = ConfidenceScorer(registry)
        record = {"anbieter": "Bank A", "kreditbetrag": 250000, "sollzinssatz": None, "effektivzinssatz": None}

        assert scorer.score(record, "angebotsvergleich") == 0.5

    def test_unknown_type_uses_populated_share(self, registry):
        assert ConfidenceScorer(registry).score({"a": 1, "b": None}, "unknown") == 0.5


class TestRecordValidator:
    """Tests for RecordValidator."""

    def test_missing_and_null_fields_are_warnings(self):
        result = RecordValidator().validate({"vendorName": None}, ["vendorName", "totalAmount"])

        assert result.is_valid
        assert result.warnings == [
            "Required field 'vendorName' is null",
            "Required field 'totalAmount' is missing",
        ]

    def test_blank_field_name_is_warning(self):
        result = RecordValidator().validate({"": 1, "  ": 2, "name": "x"}, [])

        assert result.is_valid
        assert result.warnings == ["Blank field name: ''", "Blank field name: '  '"]

    def test_get_object(self):
        record = {"verification": {"a": True}, "list": [1]}

        assert get_object(record, "verification") == {"a": True}
        assert get_object(record, "list") is None
        assert get_object(record, "missing") is None


class TestDateNormalizer:
    """Tests for DateNormalizer."""

    @pytest.mark.parametrize("value,expected", [
        ("01.01.2027", date(2027, 1, 1)),
        ("2024-03-15", date(2024, 3, 15)),
        ("15/03/2024", date(2024, 3, 15)),
        (date(2020, 5, 4), date(2020, 5, 4)),
    ])
    def test_parse(self, value, expected):
        assert DateNormalizer().parse(value) == expected

    @pytest.mark.parametrize("value", ["10 Jahre", "2030", "", None, 42, "bis auf weiteres"])
    def test_not_a_date(self, value):
        assert DateNormalizer().parse(value) is None

    def test_normalize(self):
        assert DateNormalizer().normalize("15/03/2024") == "2024-03-15"

    @pytest.mark.parametrize("start,end,years", [
        (date(2020, 1, 1), date(2027, 1, 1), 7),
        (date(2020, 6, 15), date(2027, 6, 14), 6),
        (date(2027, 1, 1), date(2020, 1, 1), -7),
    ])
    def test_whole_years_between(self, start, end, years):
        assert DateNormalizer.whole_years_between(start, end) == years


class TestAmountNormalizer:
    """Tests for AmountNormalizer."""

    @pytest.mark.parametrize("value,expected", [
        ("€ 250.000,00", 250000.0),
        ("250.000", 250000.0),
        ("1,250,000", 1250000.0),
        ("1,234.56", 1234.56),
        ("3,25 %", 3.25),
        ("0.500", 0.5),
        ("EUR 1.500", 1500.0),
        (450, 450.0),
        (3.2, 3.2),
    ])
    def test_to_float(self, value, expected):
        assert AmountNormalizer().to_float(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", [None, True, "", "n/a", {"a": 1}])
    def test_not_numeric(self, value):
        assert AmountNormalizer().to_float(value) is None

    def test_normalize(self):
        assert AmountNormalizer().normalize("1.234,5") == "1234.50"
