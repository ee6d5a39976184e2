from typing import Any, Dict, List, Tuple

from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import InternalFailureError, ValidationFailedError
from app.core.logging_config import get_logger
from app.crud.dynamic_record import CRUDDynamicRecord, finance_crud
from app.crud.field_metadata import field_metadata_crud
from app.models.import_provenance import ImportProvenance
from app.schemas.dynamic_record import DiscoveredField, ImportResult, RejectedRow
from app.schemas.field_value import FieldType, is_empty, normalize
from app.services.field_inference import (
    RESERVED_KEYS,
    detect_field_type_from_header,
    sanitize_field_key,
)
from app.services.spreadsheet_parser import ParsedSheet

logger = get_logger(__name__)


class LedgerImportService:
    """
    Turns parsed spreadsheet rows into finance records for one (year, month)
    partition.

    Validation is per row and never aborts the upload; the insert of the
    accepted rows is a single transaction.
    """

    def __init__(self, store: CRUDDynamicRecord = finance_crud):
        self.store = store
        self.category = store.category
        self.identity_field = store.identity_field

    def _header_keys(self, headers: List[str]) -> List[Tuple[str, str]]:
        pairs = []
        for header in headers:
            key = sanitize_field_key(header)
            if key and key not in RESERVED_KEYS:
                pairs.append((header, key))
        return pairs

    def discover_fields(self, db: Session, header_keys: List[Tuple[str, str]]) -> List[DiscoveredField]:
        """Catalogue every header the catalog has not seen yet and commit."""
        discovered = []
        try:
            for header, key in header_keys:
                if field_metadata_crud.get_by_key(db, category=self.category, key=key):
                    continue
                inferred = detect_field_type_from_header(header)
                created = field_metadata_crud.register_discovered(
                    db,
                    category=self.category,
                    key=key,
                    label=header.strip(),
                    inferred_type=inferred,
                )
                if created is not None:
                    discovered.append(DiscoveredField(
                        key=created.key,
                        label=created.label,
                        type=FieldType(created.type),
                        display_order=created.display_order,
                    ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        return discovered

    def build_fields(
        self, row: Dict[str, Any], header_keys: List[Tuple[str, str]], declared: Dict[str, FieldType]
    ) -> Dict[str, Any]:
        return {key: normalize(row.get(header), declared.get(key)) for header, key in header_keys}

    def import_sheet(self, db: Session, sheet: ParsedSheet, *, year: int, month_name: str) -> ImportResult:
        if not year or not month_name or not str(month_name).strip():
            raise ValidationFailedError("Year and month_name are required")
        month_name = str(month_name).strip()

        header_keys = self._header_keys(sheet.named_headers)
        if not header_keys:
            raise ValidationFailedError("Excel file has no usable column headers")
        column_order = list(dict.fromkeys(key for _, key in header_keys))

        is_first_upload = self.store.count_partition(db, year=year, month_name=month_name) == 0
        discovered = self.discover_fields(db, header_keys)
        declared = {
            row.key: FieldType(row.type)
            for row in field_metadata_crud.get_multi_by_category(db, category=self.category)
        }

        accepted: List[Tuple[int, Dict[str, Any]]] = []
        rejected: List[RejectedRow] = []
        for ordinal, row in enumerate(sheet.rows, start=1):
            if all(is_empty(value) for value in row.values()):
                continue

            fields = self.build_fields(row, header_keys, declared)
            if not is_first_upload and is_empty(fields.get(self.identity_field)):
                rejected.append(RejectedRow(
                    rowNumber=ordinal + 1,  # +1 for the header row
                    reason=f"Missing or empty '{self.identity_field}' field",
                    data=fields,
                ))
                continue
            accepted.append((ordinal, fields))

        if settings.LEDGER_STRICT_CROSS_VALIDATION and not is_first_upload and accepted:
            accepted, rejected = self._cross_validate(db, accepted, rejected)

        inserted = self._insert(db, accepted, year=year, month_name=month_name, column_order=column_order)

        logger.info(
            f"Ledger import {month_name} {year}: {len(sheet.rows)} rows, {inserted} inserted, "
            f"{len(rejected)} rejected, {len(discovered)} new field(s), first upload={is_first_upload}"
        )
        return ImportResult(
            totalRows=len(sheet.rows),
            validRows=len(accepted),
            insertedRows=inserted,
            rejectedRows=len(rejected),
            rejectedData=sorted(rejected, key=lambda r: r.rowNumber),
            discoveredFields=discovered,
            isFirstUpload=is_first_upload,
            year=year,
            month_name=month_name,
        )

    def _cross_validate(
        self, db: Session, accepted: List[Tuple[int, Dict[str, Any]]], rejected: List[RejectedRow]
    ) -> Tuple[List[Tuple[int, Dict[str, Any]]], List[RejectedRow]]:
        """Reject rows whose identifying value has never been seen in the ledger."""
        identities = [str(fields[self.identity_field]).strip() for _, fields in accepted]
        known = self.store.known_identity_values(db, identities)

        kept = []
        for ordinal, fields in accepted:
            value = str(fields[self.identity_field]).strip()
            if value in known:
                kept.append((ordinal, fields))
            else:
                rejected.append(RejectedRow(
                    rowNumber=ordinal + 1,
                    reason=f"Unknown {self.identity_field} '{value}'",
                    data=fields,
                ))
        return kept, rejected

    def _insert(
        self,
        db: Session,
        accepted: List[Tuple[int, Dict[str, Any]]],
        *,
        year: int,
        month_name: str,
        column_order: List[str],
    ) -> int:
        """All-or-nothing insert of the accepted rows with their provenance."""
        if not accepted:
            return 0
        try:
            records = []
            for ordinal, fields in accepted:
                record = self.store.build(fields=fields, year=year, month_name=month_name)
                db.add(record)
                records.append((ordinal, record))
            db.flush()

            db.add_all([
                ImportProvenance(
                    category=self.category,
                    record_id=record.id,
                    row_ordinal=ordinal,
                    column_order=column_order,
                )
                for ordinal, record in records
            ])
            db.commit()
        except Exception as e:
            db.rollback()
            logger.exception(f"Ledger import for {month_name} {year} rolled back: {e}")
            raise InternalFailureError(
                "Failed to store imported rows; nothing was inserted",
                details={"error": str(e)},
            )
        return len(records)


ledger_import_service = LedgerImportService()
