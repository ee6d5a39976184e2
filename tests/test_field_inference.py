from datetime import date, datetime

import pytest

from app.schemas.field_value import (
    CurrencyValue, DateValue, FieldType, NumberValue, TextValue, coerce_value, normalize,
)
from app.services.field_inference import (
    collect_samples,
    derive_label,
    detect_field_type_from_header,
    infer_type_from_samples,
    sanitize_field_key,
)


@pytest.mark.parametrize("header,key", [
    ("Total Salary (AED)", "total_salary_aed"),
    ("  RICK ", "rick"),
    ("Uber 30 Days", "uber_30_days"),
    ("a--b", "a_b"),
])
def test_sanitize_field_key(header, key):
    assert sanitize_field_key(header) == key


@pytest.mark.parametrize("key,label", [
    ("pos", "POS"),
    ("rick", "RICK"),
    ("obopm", "OB/OPM"),
    ("total_salary", "Total Salary"),
    ("careem-30-days", "Careem 30 Days"),
    ("grossSalary", "Gross Salary"),
])
def test_derive_label(key, label):
    assert derive_label(key) == label


@pytest.mark.parametrize("header,expected", [
    ("Total Salary", FieldType.CURRENCY),
    ("Salik", FieldType.CURRENCY),
    ("Join Date", FieldType.DATE),
    ("Trip Count", FieldType.CURRENCY),
    ("Quantity", FieldType.NUMBER),
    ("Name", FieldType.TEXT),
])
def test_detect_field_type_from_header(header, expected):
    assert detect_field_type_from_header(header) == expected


class TestInferTypeFromSamples:

    def test_integers_are_numbers(self):
        assert infer_type_from_samples([1, "2", 30]) == FieldType.NUMBER

    def test_fraction_makes_currency(self):
        assert infer_type_from_samples(["10", 12.5]) == FieldType.CURRENCY

    def test_any_text_makes_text(self):
        assert infer_type_from_samples(["10", "N/A"]) == FieldType.TEXT

    def test_no_samples_is_text(self):
        assert infer_type_from_samples([]) == FieldType.TEXT

    def test_leading_zero_codes_are_text(self):
        assert infer_type_from_samples(["0042", "0043"]) == FieldType.TEXT


def test_collect_samples_skips_empty_and_caps():
    documents = [{"a": "", "b": 1}, {"a": "x", "b": 2}, {"a": "y", "b": 3, "_excel_row": 4}]

    samples = collect_samples(documents, 2, exclude={"_excel_row"})

    assert samples == {"a": ["x", "y"], "b": [1, 2]}


class TestCoerceValue:

    def test_numeric_string(self):
        assert coerce_value(" 42 ") == NumberValue(value=42)

    def test_currency_when_declared(self):
        assert coerce_value("42", FieldType.CURRENCY) == CurrencyValue(value=42.0)

    def test_empty_is_empty_text(self):
        assert coerce_value(None) == TextValue(value="")
        assert coerce_value("   ") == TextValue(value="")

    def test_dates(self):
        assert coerce_value(date(2024, 1, 31)) == DateValue(value=date(2024, 1, 31))

    def test_text_is_trimmed(self):
        assert coerce_value("  Ali  ") == TextValue(value="Ali")

    def test_booleans_are_not_numbers(self):
        assert coerce_value(True).type == "boolean"

    @pytest.mark.parametrize("raw", ["0042", "+971501234567", "1E5", "007.5"])
    def test_identifier_like_strings_stay_text(self, raw):
        assert coerce_value(raw) == TextValue(value=raw)

    def test_declared_text_keeps_digits(self):
        assert coerce_value("12345678901234567891", FieldType.TEXT) == TextValue(value="12345678901234567891")
        assert coerce_value(" 42 ", FieldType.TEXT) == TextValue(value="42")

    def test_declared_date_keeps_numeric_string(self):
        assert coerce_value("20240131", FieldType.DATE) == TextValue(value="20240131")

    def test_declared_number_parses_leading_zero(self):
        assert coerce_value("0042", FieldType.NUMBER) == NumberValue(value=42)

    def test_long_integers_are_exact(self):
        assert normalize("12345678901234567891") == 12345678901234567891
        assert normalize(12345678901234567891, FieldType.TEXT) == 12345678901234567891

    def test_negative_amounts_are_numbers(self):
        assert coerce_value("-50") == NumberValue(value=-50)


def test_normalize_serializes_to_json_scalars():
    assert normalize("9") == 9
    assert normalize("9.50") == 9.5
    assert normalize(datetime(2024, 1, 5)) == "2024-01-05"
    assert normalize(datetime(2024, 1, 5, 8, 30)) == "2024-01-05T08:30:00"
    assert normalize("") == ""
