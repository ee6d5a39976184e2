"""
Endpoints shared by every dynamic record table (finance ledger, payslips).

``register_record_routes`` is called at the end of each router module so the
static paths that module declares first win over ``/{record_id}``.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from app.crud.dynamic_record import CRUDDynamicRecord
from app.crud.field_metadata import field_metadata_crud
from app.database.session import get_db
from app.schemas.base import build_pagination
from app.schemas.dynamic_record import (
    BulkDeleteRequest, FieldDescriptor, FieldDescriptorUpdate,
    record_update_from_body, serialize_record,
)
from app.schemas.field_value import FieldType
from app.utils.response_utils import ResponseWrapper, raise_http_error
from common_utils.auth.permission_checker import PermissionChecker


def list_response(store: CRUDDynamicRecord, db: Session, *, page: int, size: int, **filters: Any) -> Dict[str, Any]:
    total, records, fields = store.get_multi_filtered(db, page=page, size=size, **filters)
    return {
        "records": [serialize_record(record) for record in records],
        "fields": fields,
        "pagination": build_pagination(page, size, total),
    }


def register_record_routes(router: APIRouter, store: CRUDDynamicRecord, resource: str) -> None:
    label = store.category

    @router.get("/fields", response_model=dict, status_code=status.HTTP_200_OK)
    async def describe_fields(
        db: Session = Depends(get_db),
        _=Depends(PermissionChecker([f"{resource}.view"]))
    ):
        """Catalogued fields in display order"""
        try:
            descriptors = field_metadata_crud.describe_fields(db, category=label)
            return ResponseWrapper.success(data=descriptors, message="Fields fetched successfully")
        except Exception as e:
            raise_http_error(e, f"fetching {label} fields")

    @router.put("/fields/{field_key}", response_model=dict, status_code=status.HTTP_200_OK)
    async def update_field(
        field_key: str,
        descriptor_update: FieldDescriptorUpdate,
        db: Session = Depends(get_db),
        _=Depends(PermissionChecker([f"{resource}.update"]))
    ):
        """Correct a catalogued field's label, type or display traits"""
        try:
            row = field_metadata_crud.update_descriptor(db, category=label, key=field_key, obj_in=descriptor_update)
            descriptor = FieldDescriptor(
                key=row.key, label=row.label, type=FieldType(row.type), sortable=row.sortable,
                highlight=row.highlight, hidden=row.hidden, display_order=row.display_order,
                category=row.category, catalogued=True,
            )
            return ResponseWrapper.success(data=descriptor, message=f"Field '{field_key}' updated successfully")
        except Exception as e:
            db.rollback()
            raise_http_error(e, f"updating {label} field '{field_key}'")

    @router.delete("/fields/{field_key}", response_model=dict, status_code=status.HTTP_200_OK)
    async def delete_field(
        field_key: str,
        db: Session = Depends(get_db),
        _=Depends(PermissionChecker([f"{resource}.delete"]))
    ):
        """Remove a field from every record and from the catalog"""
        try:
            result = store.delete_field(db, key=field_key)
            message = f"Field '{field_key}' deleted successfully"
            if result.recordsUpdated:
                message += f" and removed from {result.recordsUpdated} record(s)"
            return ResponseWrapper.deleted(data=result, message=message)
        except Exception as e:
            db.rollback()
            raise_http_error(e, f"deleting {label} field '{field_key}'")

    @router.delete("/", response_model=dict, status_code=status.HTTP_200_OK)
    async def bulk_delete_records(
        request: BulkDeleteRequest,
        db: Session = Depends(get_db),
        _=Depends(PermissionChecker([f"{resource}.delete"]))
    ):
        """Delete several records; ids that do not exist are reported, not fatal"""
        try:
            result = store.bulk_delete(db, ids=request.ids)
            message = f"Deleted {len(result.deletedIds)} {label} record(s)"
            if result.notFoundIds:
                message += f", {len(result.notFoundIds)} not found"
            return ResponseWrapper.deleted(data=result, message=message)
        except Exception as e:
            db.rollback()
            raise_http_error(e, f"bulk deleting {label} records")

    @router.get("/{record_id}", response_model=dict, status_code=status.HTTP_200_OK)
    async def get_record(
        record_id: int,
        db: Session = Depends(get_db),
        _=Depends(PermissionChecker([f"{resource}.view"]))
    ):
        try:
            record = store.get_record(db, record_id)
            return ResponseWrapper.success(data=serialize_record(record), message="Record fetched successfully")
        except Exception as e:
            raise_http_error(e, f"fetching {label} record {record_id}")

    @router.put("/{record_id}", response_model=dict, status_code=status.HTTP_200_OK)
    async def update_record(
        record_id: int,
        body: Dict[str, Any] = Body(...),
        db: Session = Depends(get_db),
        _=Depends(PermissionChecker([f"{resource}.update"]))
    ):
        """Merge the given keys into the record; keys not sent are kept"""
        try:
            record = store.update_record(db, id=record_id, obj_in=record_update_from_body(body))
            return ResponseWrapper.success(data=serialize_record(record), message="Record updated successfully")
        except Exception as e:
            db.rollback()
            raise_http_error(e, f"updating {label} record {record_id}")

    @router.delete("/{record_id}", response_model=dict, status_code=status.HTTP_200_OK)
    async def delete_record(
        record_id: int,
        db: Session = Depends(get_db),
        _=Depends(PermissionChecker([f"{resource}.delete"]))
    ):
        try:
            store.delete_record(db, id=record_id)
            return ResponseWrapper.deleted(data={"id": record_id}, message="Record deleted successfully")
        except Exception as e:
            db.rollback()
            raise_http_error(e, f"deleting {label} record {record_id}")


def sort_params(
    sort_by: Optional[str] = Query(None, description="Column or field key to order by"),
    sort_order: str = Query("desc", description="asc or desc"),
) -> Dict[str, Any]:
    return {"sort_by": sort_by, "sort_order": sort_order}
