from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import NotFoundError
from app.core.logging_config import get_logger
from app.crud.base import CRUDBase
from app.models.field_metadata import FieldMetadata
from app.schemas.dynamic_record import FieldDescriptor, FieldDescriptorUpdate
from app.schemas.field_value import FieldType
from app.services.field_inference import (
    RESERVED_KEYS,
    collect_samples,
    derive_label,
    infer_type_from_samples,
    should_highlight,
)
from app.utils.upsert import insert_ignore

logger = get_logger(__name__)


class CRUDFieldMetadata(CRUDBase[FieldMetadata, FieldDescriptor, FieldDescriptorUpdate]):
    def get_by_key(self, db: Session, *, category: str, key: str) -> Optional[FieldMetadata]:
        return db.query(FieldMetadata).filter(
            FieldMetadata.category == category,
            FieldMetadata.key == key,
        ).first()

    def get_multi_by_category(self, db: Session, *, category: str) -> List[FieldMetadata]:
        return (
            db.query(FieldMetadata)
            .filter(FieldMetadata.category == category, FieldMetadata.is_active.is_(True))
            .order_by(FieldMetadata.display_order, FieldMetadata.key)
            .all()
        )

    def next_display_order(self, db: Session, *, category: str) -> int:
        current = db.query(func.max(FieldMetadata.display_order)).filter(
            FieldMetadata.category == category
        ).scalar()
        return (current or 0) + 1

    def register_discovered(
        self,
        db: Session,
        *,
        category: str,
        key: str,
        label: str,
        inferred_type: FieldType,
        display_order: Optional[int] = None,
    ) -> Optional[FieldMetadata]:
        """
        Catalogue a key seen for the first time.

        Returns None when the key is already catalogued; an existing
        descriptor is never overwritten. Does not commit.
        """
        if display_order is None:
            display_order = self.next_display_order(db, category=category)

        inserted = insert_ignore(db, FieldMetadata.__table__, [{
            "category": category,
            "key": key,
            "label": label,
            "type": FieldType(inferred_type).value,
            "sortable": True,
            "highlight": should_highlight(key),
            "hidden": False,
            "display_order": display_order,
            "is_active": True,
        }])
        if not inserted:
            return None

        logger.info(f"Registered field '{key}' ({FieldType(inferred_type).value}) for {category}")
        return self.get_by_key(db, category=category, key=key)

    def update_descriptor(
        self, db: Session, *, category: str, key: str, obj_in: FieldDescriptorUpdate
    ) -> FieldMetadata:
        descriptor = self.get_by_key(db, category=category, key=key)
        if not descriptor:
            raise NotFoundError(f"Field '{key}' is not catalogued for {category}")

        update_data = obj_in.model_dump(exclude_unset=True)
        if "type" in update_data and update_data["type"] is not None:
            update_data["type"] = FieldType(update_data["type"]).value
        return self.update(db, db_obj=descriptor, obj_in=update_data)

    def remove_by_key(self, db: Session, *, category: str, key: str) -> bool:
        """Drop a descriptor if present. Does not commit."""
        deleted = db.query(FieldMetadata).filter(
            FieldMetadata.category == category,
            FieldMetadata.key == key,
        ).delete(synchronize_session=False)
        return bool(deleted)

    def describe_fields(
        self,
        db: Session,
        *,
        category: str,
        documents: Sequence[Dict[str, Any]] = (),
        column_order: Iterable[str] = (),
    ) -> List[FieldDescriptor]:
        """
        Catalogued descriptors by display order, followed by keys that only
        appear in ``documents``. Those are typed from sampled values and ordered
        by their position in ``column_order``, then alphabetically.
        """
        catalogued = [
            FieldDescriptor(
                key=row.key,
                label=row.label,
                type=FieldType(row.type),
                sortable=row.sortable,
                highlight=row.highlight,
                hidden=row.hidden,
                display_order=row.display_order,
                category=row.category,
                catalogued=True,
            )
            for row in self.get_multi_by_category(db, category=category)
        ]
        known = {descriptor.key for descriptor in catalogued}

        samples = collect_samples(
            documents, settings.FIELD_SAMPLE_SIZE, exclude=known | RESERVED_KEYS
        )
        positions = {key: index for index, key in enumerate(column_order)}
        unknown_position = len(positions)

        inferred_keys = sorted(
            samples,
            key=lambda k: (positions.get(k, unknown_position), k),
        )
        next_order = max((d.display_order for d in catalogued), default=0)
        inferred = [
            FieldDescriptor(
                key=key,
                label=derive_label(key),
                type=infer_type_from_samples(samples[key]),
                highlight=should_highlight(key),
                display_order=next_order + offset,
                category=category,
            )
            for offset, key in enumerate(inferred_keys, start=1)
        ]
        return catalogued + inferred


field_metadata_crud = CRUDFieldMetadata(FieldMetadata)
