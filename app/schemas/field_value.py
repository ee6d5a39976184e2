"""Typed values for the open ``fields`` map of dynamic records.

Every value that enters ``DynamicRecord.fields`` is first coerced into one of
the ``FieldValue`` variants with :func:`coerce_value` and stored through
:func:`to_json`. Reads go the other way with :func:`from_json`.
"""
import re
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    CURRENCY = "currency"
    DATE = "date"
    BOOLEAN = "boolean"


NUMERIC_TYPES = {FieldType.NUMBER, FieldType.CURRENCY}

_NUMERIC_LITERAL = re.compile(r"^[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?$")
_INTEGER_LITERAL = re.compile(r"^[-+]?\d+$")
_PLAIN_NUMBER = re.compile(r"^-?(0|[1-9]\d*)(\.\d+)?$")


class TextValue(BaseModel):
    type: Literal["text"] = "text"
    value: str


class NumberValue(BaseModel):
    type: Literal["number"] = "number"
    value: Union[int, float]


class CurrencyValue(BaseModel):
    type: Literal["currency"] = "currency"
    value: float


class DateValue(BaseModel):
    type: Literal["date"] = "date"
    value: Union[datetime, date]


class BooleanValue(BaseModel):
    type: Literal["boolean"] = "boolean"
    value: bool


FieldValue = Annotated[
    Union[TextValue, NumberValue, CurrencyValue, DateValue, BooleanValue],
    Field(discriminator="type"),
]

field_value_adapter = TypeAdapter(FieldValue)


def is_numeric_literal(raw: Any) -> bool:
    """True for ints/floats and for strings that spell one."""
    if isinstance(raw, bool):
        return False
    if isinstance(raw, (int, float, Decimal)):
        return True
    if isinstance(raw, str):
        return bool(_NUMERIC_LITERAL.match(raw.strip()))
    return False


def reads_as_number(raw: Any) -> bool:
    """
    Numeric literal that can be stored as a number without changing its text.

    Strings with a leading zero, a plus sign or an exponent ("0042",
    "+971501234567", "1E5") do not qualify; they only become numbers
    under a declared number or currency type.
    """
    if isinstance(raw, str):
        return bool(_PLAIN_NUMBER.match(raw.strip()))
    return is_numeric_literal(raw)


def parse_number(raw: Any) -> Union[int, float]:
    """Integer literals stay exact ints; anything else goes through float."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if _INTEGER_LITERAL.match(text):
            return int(text)
        number = float(text)
    else:
        number = float(raw)
    return int(number) if number.is_integer() else number


def is_empty(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and raw.strip() == "")


def coerce_value(raw: Any, declared: Optional[FieldType] = None) -> FieldValue:
    """
    Turn a native cell or JSON scalar into a FieldValue.

    Native numbers stay numbers. A string becomes a number only when the
    declared type is numeric, or when nothing is declared and the string
    reads as a plain number; a field declared text or date keeps the string.
    Dates keep their calendar value. Empty input is an empty text value.
    """
    if is_empty(raw):
        return TextValue(value="")
    if isinstance(raw, bool):
        return BooleanValue(value=raw)
    if isinstance(raw, (datetime, date)):
        return DateValue(value=raw)
    if isinstance(raw, time):
        return TextValue(value=raw.isoformat())
    if isinstance(raw, str):
        text = raw.strip()
        numeric = is_numeric_literal(text) if declared in NUMERIC_TYPES else (
            declared is None and reads_as_number(text)
        )
        if not numeric:
            return TextValue(value=text)
    elif not is_numeric_literal(raw):
        return TextValue(value=str(raw).strip())

    number = parse_number(raw)
    if declared == FieldType.CURRENCY:
        return CurrencyValue(value=float(number))
    return NumberValue(value=number)


def to_json(value: FieldValue) -> Any:
    """Native JSON scalar stored in the document column."""
    if isinstance(value, DateValue):
        if isinstance(value.value, datetime) and value.value.time() != time(0, 0):
            return value.value.isoformat()
        return value.value.strftime("%Y-%m-%d")
    if isinstance(value, NumberValue):
        return parse_number(value.value)
    return value.value


def from_json(raw: Any, declared: Optional[FieldType] = None) -> FieldValue:
    """Read a stored scalar back as a FieldValue, honouring the declared type."""
    if declared == FieldType.DATE and isinstance(raw, str) and raw:
        try:
            return DateValue(value=datetime.fromisoformat(raw))
        except ValueError:
            return TextValue(value=raw)
    if declared == FieldType.BOOLEAN and isinstance(raw, str) and raw.lower() in ("true", "false"):
        return BooleanValue(value=raw.lower() == "true")
    return coerce_value(raw, declared)


def normalize(raw: Any, declared: Optional[FieldType] = None) -> Any:
    """Coerce and serialize in one step, the path every write takes."""
    return to_json(coerce_value(raw, declared))
