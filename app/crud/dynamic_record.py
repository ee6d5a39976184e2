from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from sqlalchemy import Numeric, String, case, cast, func
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import ForbiddenError, NotFoundError, ValidationFailedError
from app.core.logging_config import get_logger
from app.crud.base import CRUDBase
from app.crud.field_metadata import field_metadata_crud
from app.models.dynamic_record import DynamicRecordMixin, FinanceRecord, Payslip
from app.models.import_provenance import ImportProvenance
from app.schemas.dynamic_record import (
    BulkDeleteResult, DeleteFieldResult, FieldDescriptor, RecordUpdate,
)
from app.schemas.field_value import NUMERIC_TYPES, FieldType, is_empty, normalize
from app.services.field_inference import (
    RESERVED_KEYS, collect_samples, derive_label, detect_field_type_from_header, infer_type_from_samples,
)

logger = get_logger(__name__)

# First-class columns a list can be ordered by
PARTITION_SORT_COLUMNS = ("id", "year", "month_name", "created_at", "updated_at")

# Records scanned to type keys that are not catalogued when resolving a sort key
SORT_SAMPLE_ROWS = 100

# Text that CAST(... AS NUMERIC) accepts on every backend; anything else sorts as NULL
NUMERIC_TEXT_PATTERN = r"^\s*[-+]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][-+]?[0-9]+)?\s*$"


def strip_reserved(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if key not in RESERVED_KEYS}


class CRUDDynamicRecord(CRUDBase[DynamicRecordMixin, RecordUpdate, RecordUpdate]):
    """
    Store for records whose payload is an open JSON ``fields`` map.

    One instance per table; ``identity_field`` and ``search_field`` name the
    JSON keys used for exact-match and substring filtering.
    """

    def __init__(
        self,
        model: Type[DynamicRecordMixin],
        *,
        identity_field: str,
        search_field: str,
        protected_keys: Iterable[str] = (),
    ):
        super().__init__(model)
        self.category = model.category
        self.identity_field = identity_field
        self.search_field = search_field
        self.protected_keys = frozenset(protected_keys) | {identity_field, search_field}

    # JSON accessors

    def json_text(self, key: str):
        """``fields[key]`` as text, comparable across PostgreSQL and SQLite."""
        return cast(self.model.fields[key].as_string(), String)

    def json_number(self, key: str):
        """``fields[key]`` as NUMERIC when its text is a number, NULL otherwise ("N/A", "-", "")."""
        text = self.json_text(key)
        return case((text.regexp_match(NUMERIC_TEXT_PATTERN), cast(text, Numeric)), else_=None)

    # Reads

    def _declared_types(self, db: Session) -> Dict[str, FieldType]:
        return {
            row.key: FieldType(row.type)
            for row in field_metadata_crud.get_multi_by_category(db, category=self.category)
        }

    def filtered_query(
        self,
        db: Session,
        *,
        year: Optional[int] = None,
        month: Optional[str] = None,
        search: Optional[str] = None,
        identity: Optional[str] = None,
        status: Optional[str] = None,
    ):
        query = db.query(self.model)
        if year is not None:
            query = query.filter(self.model.year == year)
        if month:
            query = query.filter(func.lower(self.model.month_name) == month.strip().lower())
        if search:
            query = query.filter(self.json_text(self.search_field).ilike(f"%{search.strip()}%"))
        if identity:
            query = query.filter(self.json_text(self.identity_field) == identity.strip())
        if status:
            query = query.filter(self.json_text("status") == status.strip())
        return query

    def sort_targets(self, db: Session, query) -> Dict[str, FieldType]:
        """
        Enumerate every key a list may be ordered by, with the type that picks
        numeric or textual comparison.
        """
        targets: Dict[str, FieldType] = {
            column: FieldType.NUMBER if column in ("id", "year") else FieldType.TEXT
            for column in PARTITION_SORT_COLUMNS
        }
        declared = {
            row.key: FieldType(row.type)
            for row in field_metadata_crud.get_multi_by_category(db, category=self.category)
            if row.sortable
        }
        sample_rows = query.order_by(self.model.id).limit(SORT_SAMPLE_ROWS).all()
        samples = collect_samples(
            (row.fields for row in sample_rows),
            settings.FIELD_SAMPLE_SIZE,
            exclude=set(declared) | RESERVED_KEYS,
        )
        for key, values in samples.items():
            targets.setdefault(key, infer_type_from_samples(values))
        for key, field_type in declared.items():
            targets.setdefault(key, field_type)
        return targets

    def _order_clause(self, db: Session, query, sort_by: Optional[str], sort_order: str):
        descending = (sort_order or "desc").lower() != "asc"
        default = [self.model.created_at.desc(), self.model.id.desc()]
        if not sort_by:
            return default

        targets = self.sort_targets(db, query)
        if sort_by not in targets:
            logger.warning(f"Ignoring unknown sort key '{sort_by}' for {self.category}")
            return default

        if sort_by in PARTITION_SORT_COLUMNS:
            expression = getattr(self.model, sort_by)
        elif targets[sort_by] in NUMERIC_TYPES:
            expression = self.json_number(sort_by)
        else:
            expression = self.json_text(sort_by)

        tiebreak = self.model.id.desc() if descending else self.model.id.asc()
        return [expression.desc() if descending else expression.asc(), tiebreak]

    def get_multi_filtered(
        self,
        db: Session,
        *,
        year: Optional[int] = None,
        month: Optional[str] = None,
        search: Optional[str] = None,
        identity: Optional[str] = None,
        status: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "desc",
        page: int = 0,
        size: int = 10,
    ) -> Tuple[int, List[DynamicRecordMixin], List[FieldDescriptor]]:
        """
        One page of records plus the descriptors of the keys on that page.
        Returns (total, records, fields).
        """
        query = self.filtered_query(
            db, year=year, month=month, search=search, identity=identity, status=status
        )
        total = query.order_by(None).count()
        order = self._order_clause(db, query, sort_by, sort_order)
        records = query.order_by(*order).offset(page * size).limit(size).all()

        fields = field_metadata_crud.describe_fields(
            db,
            category=self.category,
            documents=[record.fields for record in records],
            column_order=self.column_order_for(db, records),
        )
        return total, records, fields

    def get_record(self, db: Session, id: int) -> DynamicRecordMixin:
        return self.get_or_404(db, id, label=f"{self.category.capitalize()} record")

    def column_order_for(self, db: Session, records: Sequence[DynamicRecordMixin]) -> List[str]:
        """Header order of the import the page came from, else the first record's key order."""
        if not records:
            return []
        provenance = (
            db.query(ImportProvenance)
            .filter(
                ImportProvenance.category == self.category,
                ImportProvenance.record_id.in_([record.id for record in records]),
            )
            .order_by(ImportProvenance.record_id.desc())
            .first()
        )
        if provenance is not None:
            return list(provenance.column_order or [])
        return list((records[0].fields or {}).keys())

    def get_provenance(self, db: Session, record_id: int) -> Optional[ImportProvenance]:
        return db.query(ImportProvenance).filter(
            ImportProvenance.category == self.category,
            ImportProvenance.record_id == record_id,
        ).first()

    def count_partition(self, db: Session, *, year: int, month_name: str) -> int:
        return self.filtered_query(db, year=year, month=month_name).order_by(None).count()

    def known_identity_values(self, db: Session, values: Iterable[str]) -> set:
        wanted = {str(value).strip() for value in values if str(value).strip()}
        if not wanted:
            return set()
        rows = (
            db.query(self.json_text(self.identity_field))
            .filter(self.json_text(self.identity_field).in_(wanted))
            .distinct()
            .all()
        )
        return {row[0] for row in rows}

    # Writes

    def normalize_fields(self, db: Session, values: Dict[str, Any]) -> Dict[str, Any]:
        values = strip_reserved(values)
        nested = sorted(key for key, value in values.items() if isinstance(value, (dict, list, tuple, set)))
        if nested:
            raise ValidationFailedError(
                "Record fields must be scalar values",
                details={"non_scalar_fields": nested},
            )
        declared = self._declared_types(db)
        return {key: normalize(value, declared.get(key)) for key, value in values.items()}

    def catalog_new_keys(self, db: Session, values: Dict[str, Any]) -> List[str]:
        """
        Register a descriptor for every key of ``values`` not yet catalogued.
        The header hint decides the type, else the value itself. Does not commit.
        """
        known = {row.key for row in field_metadata_crud.get_multi_by_category(db, category=self.category)}
        registered = []
        for key, value in strip_reserved(values).items():
            if key in known:
                continue
            field_type = detect_field_type_from_header(key)
            if field_type == FieldType.TEXT:
                field_type = infer_type_from_samples([] if is_empty(value) else [value])
            created = field_metadata_crud.register_discovered(
                db, category=self.category, key=key, label=derive_label(key), inferred_type=field_type
            )
            if created is not None:
                registered.append(key)
        return registered

    def build(self, *, fields: Dict[str, Any], year: Optional[int], month_name: Optional[str]) -> DynamicRecordMixin:
        return self.model(fields=dict(fields), year=year, month_name=month_name)

    def create_record(
        self,
        db: Session,
        *,
        fields: Dict[str, Any],
        year: Optional[int] = None,
        month_name: Optional[str] = None,
        **columns: Any,
    ) -> DynamicRecordMixin:
        db_obj = self.build(fields=self.normalize_fields(db, fields), year=year, month_name=month_name)
        for column, value in columns.items():
            setattr(db_obj, column, value)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        logger.info(f"{self.category.capitalize()} record {db_obj.id} created")
        return db_obj

    def update_record(self, db: Session, *, id: int, obj_in: RecordUpdate) -> DynamicRecordMixin:
        """
        Shallow-merge ``obj_in.fields`` into the stored map: keys in the patch
        overwrite, every other stored key is kept. Reserved keys are dropped.
        """
        record = self.get_record(db, id)
        patch = self.normalize_fields(db, obj_in.fields)

        # Reassign a new dict so the JSON column is flagged dirty
        record.fields = {**(record.fields or {}), **patch}
        if obj_in.year is not None:
            record.year = obj_in.year
        if obj_in.month_name is not None:
            record.month_name = obj_in.month_name

        db.add(record)
        db.commit()
        db.refresh(record)
        logger.info(f"{self.category.capitalize()} record {id} updated ({len(patch)} field(s))")
        return record

    def _delete_provenance(self, db: Session, ids: List[int]) -> None:
        if ids:
            db.query(ImportProvenance).filter(
                ImportProvenance.category == self.category,
                ImportProvenance.record_id.in_(ids),
            ).delete(synchronize_session=False)

    def delete_record(self, db: Session, *, id: int) -> int:
        record = self.get_record(db, id)
        try:
            self._delete_provenance(db, [id])
            db.delete(record)
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info(f"{self.category.capitalize()} record {id} deleted")
        return id

    def bulk_delete(self, db: Session, *, ids: List[int]) -> BulkDeleteResult:
        """
        Delete whatever exists among ``ids`` in one transaction and report the
        rest as not found instead of failing.
        """
        if not ids:
            raise ValidationFailedError("ids must contain at least one id")

        requested = list(dict.fromkeys(ids))
        existing = {
            row.id
            for row in db.query(self.model.id).filter(self.model.id.in_(requested)).all()
        }
        deleted_ids = [rid for rid in requested if rid in existing]
        not_found_ids = [rid for rid in requested if rid not in existing]

        try:
            if deleted_ids:
                self._delete_provenance(db, deleted_ids)
                db.query(self.model).filter(self.model.id.in_(deleted_ids)).delete(synchronize_session=False)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"Bulk delete on {self.category}: {len(deleted_ids)} deleted, {len(not_found_ids)} not found"
        )
        return BulkDeleteResult(deletedIds=deleted_ids, notFoundIds=not_found_ids)

    def delete_field(self, db: Session, *, key: str) -> DeleteFieldResult:
        """
        Remove ``key`` from every record of this table and drop its descriptor.
        """
        if key in self.protected_keys:
            raise ForbiddenError(f"Field '{key}' is protected and cannot be deleted")
        if key in RESERVED_KEYS:
            raise ValidationFailedError(f"'{key}' is not a record field")

        descriptor = field_metadata_crud.get_by_key(db, category=self.category, key=key)
        updated = 0
        try:
            for record in db.query(self.model).filter(self.json_text(key).isnot(None)).all():
                if record.fields and key in record.fields:
                    record.fields = {k: v for k, v in record.fields.items() if k != key}
                    updated += 1
            removed = field_metadata_crud.remove_by_key(db, category=self.category, key=key)
            db.commit()
        except Exception:
            db.rollback()
            raise

        if not updated and descriptor is None:
            raise NotFoundError(f"Field '{key}' does not exist for {self.category}")

        logger.info(f"Field '{key}' removed from {updated} {self.category} record(s)")
        return DeleteFieldResult(key=key, recordsUpdated=updated, descriptorRemoved=removed)

    def delete_partition(self, db: Session, *, year: int, month_name: str) -> int:
        ids = [
            row.id
            for row in self.filtered_query(db, year=year, month=month_name).with_entities(self.model.id).all()
        ]
        try:
            self._delete_provenance(db, ids)
            if ids:
                db.query(self.model).filter(self.model.id.in_(ids)).delete(synchronize_session=False)
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info(f"Deleted {len(ids)} {self.category} record(s) for {month_name} {year}")
        return len(ids)


finance_crud = CRUDDynamicRecord(
    FinanceRecord,
    identity_field=settings.LEDGER_IDENTITY_FIELD,
    search_field=settings.LEDGER_SEARCH_FIELD,
)
payslip_crud = CRUDDynamicRecord(
    Payslip,
    identity_field=settings.PAYSLIP_IDENTITY_FIELD,
    search_field=settings.PAYSLIP_SEARCH_FIELD,
)
