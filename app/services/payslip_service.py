import calendar
from collections import Counter
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.core.logging_config import get_logger
from app.crud.dynamic_record import CRUDDynamicRecord, finance_crud, payslip_crud
from app.crud.field_metadata import field_metadata_crud
from app.models.dynamic_record import Payslip
from app.schemas.field_value import NUMERIC_TYPES, FieldType, from_json, is_empty
from app.schemas.payslip import (
    EntryTypeEnum, PayslipEntry, PayslipInsert, PayslipPreview, PayslipSummary, StatusCount,
)
from app.services.field_inference import derive_label

logger = get_logger(__name__)

_MONTHS = {name.lower(): index for index, name in enumerate(calendar.month_name) if name}
_MONTHS.update({name.lower(): index for index, name in enumerate(calendar.month_abbr) if name})


def month_index(month_name: Optional[str]) -> int:
    """1-12 for English month names or abbreviations, 0 when unrecognised."""
    return _MONTHS.get((month_name or "").strip().lower(), 0)


def _number(value: Any) -> Optional[float]:
    """Stored scalar as a float when it reads back as a number, else None."""
    field_value = from_json(value)
    if FieldType(field_value.type) in NUMERIC_TYPES:
        return float(field_value.value)
    return None


class PayslipService:
    """Builds payslips from ledger rows and reports on stored payslips."""

    # Ledger keys that describe the driver rather than money
    NON_FINANCIAL_KEYS = frozenset({"date", "plate"})

    def __init__(self, ledger: CRUDDynamicRecord = finance_crud, payslips: CRUDDynamicRecord = payslip_crud):
        self.ledger = ledger
        self.payslips = payslips

    def opening_balance(self, db: Session, *, identity: str, month_name: str, year: int) -> float:
        """``obopm`` of the latest payslip strictly before the given month, else 0."""
        target = (year, month_index(month_name))
        earlier = [
            slip for slip in self.payslips.filtered_query(db, identity=identity).all()
            if slip.year is not None and (slip.year, month_index(slip.month_name)) < target
        ]
        if not earlier:
            return 0.0
        latest = max(earlier, key=lambda s: (s.year, month_index(s.month_name), s.created_at, s.id))
        return _number((latest.fields or {}).get("obopm")) or 0.0

    def generate(self, db: Session, *, identity: str, month_name: str, year: int) -> PayslipPreview:
        """
        Preview a payslip from the partition's ledger rows without storing it.

        Every non-zero numeric ledger value becomes a line item: negative
        values are credits (CR), positive ones debits (DR).
        """
        rows = (
            self.ledger.filtered_query(db, year=year, month=month_name, identity=identity)
            .order_by(self.ledger.model.created_at.asc(), self.ledger.model.id.asc())
            .all()
        )
        if not rows:
            raise NotFoundError(f"No finance records found for {identity} in {month_name} {year}")

        labels = {
            row.key: row.label
            for row in field_metadata_crud.get_multi_by_category(db, category=self.ledger.category)
        }
        skipped = self.NON_FINANCIAL_KEYS | {self.ledger.identity_field, self.ledger.search_field}

        entries: List[PayslipEntry] = []
        for row in rows:
            for key, value in (row.fields or {}).items():
                if key in skipped:
                    continue
                amount = _number(value)
                if not amount:
                    continue
                entries.append(PayslipEntry(
                    field=key,
                    label=labels.get(key) or derive_label(key),
                    amount=abs(amount),
                    type=EntryTypeEnum.CR if amount < 0 else EntryTypeEnum.DR,
                ))

        first = rows[0].fields or {}
        plate = first.get("plate")
        preview = PayslipPreview(
            driver_name=None if is_empty(first.get(self.ledger.search_field)) else str(first[self.ledger.search_field]),
            rick=identity,
            plate="N/A" if is_empty(plate) else str(plate),
            month_name=month_name,
            year=year,
            obopm=self.opening_balance(db, identity=identity, month_name=month_name, year=year),
            payslip_array=entries,
            total_cr=round(sum(e.amount for e in entries if e.type == EntryTypeEnum.CR), 2),
            total_dr=round(sum(e.amount for e in entries if e.type == EntryTypeEnum.DR), 2),
        )
        logger.info(f"Generated payslip preview for {identity} ({month_name} {year}) with {len(entries)} entries")
        return preview

    def insert(self, db: Session, payload: PayslipInsert) -> Payslip:
        """Store a payslip; keys seen for the first time are catalogued in the same commit."""
        values = payload.field_values()
        registered = self.payslips.catalog_new_keys(db, values)
        if registered:
            logger.info(f"Catalogued {len(registered)} new payslip field(s): {', '.join(registered)}")
        return self.payslips.create_record(
            db,
            fields=values,
            year=payload.year,
            month_name=payload.month_name.strip(),
            entries=[entry.model_dump(mode="json") for entry in payload.payslip_array],
        )

    def list_by_identity(
        self, db: Session, *, identity: str, year: Optional[int] = None, month: Optional[str] = None
    ) -> List[Payslip]:
        slips = self.payslips.filtered_query(db, identity=identity, year=year, month=month).all()
        return sorted(
            slips,
            key=lambda s: (s.year or 0, month_index(s.month_name), s.created_at, s.id),
            reverse=True,
        )

    def summary(self, db: Session, *, year: int, month: Optional[str] = None) -> PayslipSummary:
        slips = self.payslips.filtered_query(db, year=year, month=month).all()

        def totals(key: str):
            values = [v for v in (_number((s.fields or {}).get(key)) for s in slips) if v is not None]
            if not values:
                return None, None
            return round(sum(values), 2), round(sum(values) / len(values), 2)

        total_gross, avg_gross = totals("gross_salary")
        total_net, avg_net = totals("net_salary")
        statuses = Counter(
            None if is_empty((s.fields or {}).get("status")) else str(s.fields["status"]) for s in slips
        )
        return PayslipSummary(
            period=f"{month} {year}" if month else str(year),
            total_payslips=len(slips),
            total_gross_salary=total_gross,
            total_net_salary=total_net,
            avg_gross_salary=avg_gross,
            avg_net_salary=avg_net,
            statusBreakdown=[
                StatusCount(status=status, count=count)
                for status, count in sorted(statuses.items(), key=lambda item: (item[0] is None, item[0] or ""))
            ],
        )


payslip_service = PayslipService()
