from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional
from app.config import settings
from app.crud.dynamic_record import finance_crud
from app.database.session import get_db
from app.routes.record_routes import list_response, register_record_routes, sort_params
from app.schemas.dynamic_record import PartitionDeleteResult
from app.services.ledger_import_service import ledger_import_service
from app.services.spreadsheet_parser import parse_workbook
from app.utils.file_utils import file_size_validator
from app.utils.response_utils import ResponseWrapper, raise_http_error
from common_utils.auth.permission_checker import PermissionChecker
from app.core.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/finances", tags=["Finance Ledger"])


@router.get("/", response_model=dict, status_code=status.HTTP_200_OK)
async def get_finances(
    page: int = Query(0, ge=0, description="Zero-based page number"),
    size: int = Query(10, ge=1, le=500, description="Items per page"),
    year: Optional[int] = Query(None, description="Filter by year"),
    month: Optional[str] = Query(None, description="Filter by month name (case-insensitive)"),
    search: Optional[str] = Query(None, description="Substring match on the driver name"),
    sort: Dict[str, Any] = Depends(sort_params),
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["finances.view"]))
):
    """Ledger records with the descriptors of their fields"""
    try:
        data = list_response(
            finance_crud, db, page=page, size=size, year=year, month=month, search=search, **sort
        )
        logger.info(f"Fetched {len(data['records'])} finance records (total={data['pagination']['total']})")
        return ResponseWrapper.success(data=data, message="Finance records retrieved successfully")
    except Exception as e:
        raise_http_error(e, "fetching finance records")


@router.post("/upload", response_model=dict, status_code=status.HTTP_201_CREATED)
async def upload_finances(
    excelFile: UploadFile = File(..., description="Ledger spreadsheet (.xlsx)"),
    year: int = Form(..., ge=1900, le=9999),
    month_name: str = Form(..., min_length=1),
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["finances.upload"]))
):
    """
    Import a ledger spreadsheet into the (year, month_name) partition.

    Always inserts; re-uploading a month adds rows unless the partition is
    deleted first.
    """
    try:
        content = await file_size_validator(
            excelFile, settings.ALLOWED_UPLOAD_TYPES, settings.MAX_UPLOAD_SIZE_MB
        )
        sheet = parse_workbook(content)
        result = ledger_import_service.import_sheet(db, sheet, year=year, month_name=month_name)

        if result.isFirstUpload:
            message = (
                f"First ledger uploaded successfully! Created {result.insertedRows} new records "
                f"for {result.month_name} {result.year}"
            )
        elif result.insertedRows:
            message = (
                f"Successfully uploaded {result.insertedRows} finance records "
                f"for {result.month_name} {result.year}"
            )
        else:
            message = (
                f"Upload completed but no records were inserted. "
                f"{result.rejectedRows} row(s) were rejected"
            )
        return ResponseWrapper.created(data=result, message=message)
    except Exception as e:
        db.rollback()
        raise_http_error(e, "uploading finance spreadsheet")


@router.delete("/partition", response_model=dict, status_code=status.HTTP_200_OK)
async def delete_finance_partition(
    year: int = Query(..., ge=1900, le=9999),
    month_name: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["finances.delete"]))
):
    """Clear one month of ledger records, e.g. before re-importing it"""
    try:
        deleted = finance_crud.delete_partition(db, year=year, month_name=month_name)
        return ResponseWrapper.deleted(
            data=PartitionDeleteResult(year=year, month_name=month_name, deletedCount=deleted),
            message=f"Deleted {deleted} finance record(s) for {month_name} {year}"
        )
    except Exception as e:
        db.rollback()
        raise_http_error(e, f"deleting finance records for {month_name} {year}")


register_record_routes(router, finance_crud, "finances")
