from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Dict, List, Optional
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from app.core.exceptions import ValidationFailedError
from app.core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ParsedSheet:
    """Header row and data rows of the first worksheet."""
    headers: List[Optional[str]]
    rows: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def named_headers(self) -> List[str]:
        return [header for header in self.headers if header]


def _header_text(cell: Any) -> Optional[str]:
    if cell is None:
        return None
    text = str(cell).strip()
    return text or None


def parse_workbook(content: bytes) -> ParsedSheet:
    """
    Read ``.xlsx`` bytes into headers and header->cell row mappings.

    The first row of the first worksheet holds the headers. Columns with a
    blank header are dropped; blank rows are kept so callers can count them.
    """
    try:
        workbook = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError) as e:
        logger.warning(f"Rejected unreadable spreadsheet: {e}")
        raise ValidationFailedError("Uploaded file is not a readable Excel workbook", details={"error": str(e)})

    try:
        sheet = workbook.worksheets[0]
        values = list(sheet.iter_rows(values_only=True))
    finally:
        workbook.close()

    if not values:
        raise ValidationFailedError("Excel file is empty")

    headers = [_header_text(cell) for cell in values[0]]
    if not any(headers):
        raise ValidationFailedError("Excel file has no header row")

    rows = []
    for raw in values[1:]:
        row = {}
        for index, header in enumerate(headers):
            if header:
                row[header] = raw[index] if index < len(raw) else None
        rows.append(row)

    logger.debug(f"Parsed worksheet '{sheet.title}': {len(headers)} columns, {len(rows)} data rows")
    return ParsedSheet(headers=headers, rows=rows)
