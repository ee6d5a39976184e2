"""
Header and value heuristics for dynamic record fields.

Keys, labels and types for spreadsheet columns are derived here; the catalog
and the import pipeline only consume the results.
"""
import re
from typing import Any, Dict, Iterable, List, Optional

from app.schemas.field_value import FieldType, is_empty, parse_number, reads_as_number

# Domain abbreviations that de-slugging would mangle
LABEL_OVERRIDES: Dict[str, str] = {
    "pos": "POS",
    "rick": "RICK",
    "obopm": "OB/OPM",
}

# Import bookkeeping lives in ImportProvenance; these names never enter ``fields``
RESERVED_KEYS = frozenset({"_excel_row", "_column_order"})

HIGHLIGHT_KEYS = frozenset({"total_salary", "uber_30_days", "careem_30_days", "yango_30"})

CURRENCY_HINTS = (
    "salary", "amount", "price", "cost", "fee", "daman", "darb", "fine", "salik",
    "pos", "advance", "adnoc", "trip", "uber", "careem", "yango", "exp",
)
DATE_HINTS = ("date", "time")
NUMBER_HINTS = ("count", "number", "qty", "quantity")


def sanitize_field_key(header: Any) -> str:
    """'Total Salary (AED)' -> 'total_salary_aed'"""
    key = str(header).strip().lower()
    key = re.sub(r"[^a-z0-9_]", "_", key)
    key = re.sub(r"_+", "_", key)
    return key.strip("_")


def detect_field_type_from_header(header: str) -> FieldType:
    label = header.lower()
    if any(hint in label for hint in CURRENCY_HINTS):
        return FieldType.CURRENCY
    if any(hint in label for hint in DATE_HINTS):
        return FieldType.DATE
    if any(hint in label for hint in NUMBER_HINTS):
        return FieldType.NUMBER
    return FieldType.TEXT


def derive_label(key: str) -> str:
    if key in LABEL_OVERRIDES:
        return LABEL_OVERRIDES[key]

    formatted = key.replace("_", " ").replace("-", " ")
    if formatted != formatted.upper():
        formatted = re.sub(r"([a-z])([A-Z])", r"\1 \2", formatted)

    return " ".join(word[:1].upper() + word[1:].lower() for word in formatted.split(" ") if word)


def should_highlight(key: str) -> bool:
    return key in HIGHLIGHT_KEYS


def infer_type_from_samples(samples: List[Any]) -> FieldType:
    """
    number when every sample is a numeric literal, currency when one of them
    also has a fractional part, text otherwise (including no samples at all).
    """
    if not samples or not all(reads_as_number(sample) for sample in samples):
        return FieldType.TEXT
    if any(isinstance(parse_number(sample), float) for sample in samples):
        return FieldType.CURRENCY
    return FieldType.NUMBER


def collect_samples(
    documents: Iterable[Dict[str, Any]],
    sample_size: int,
    exclude: Optional[Iterable[str]] = None,
) -> Dict[str, List[Any]]:
    """Up to ``sample_size`` non-empty values per key, keys in first-seen order."""
    excluded = set(exclude or ())
    samples: Dict[str, List[Any]] = {}
    for document in documents:
        for key, value in (document or {}).items():
            if key in excluded:
                continue
            bucket = samples.setdefault(key, [])
            if len(bucket) < sample_size and not is_empty(value):
                bucket.append(value)
    return samples
