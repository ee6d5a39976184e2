from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional
from app.crud.dynamic_record import payslip_crud
from app.database.session import get_db
from app.routes.record_routes import list_response, register_record_routes, sort_params
from app.schemas.dynamic_record import serialize_record
from app.schemas.payslip import PayslipGenerateRequest, PayslipInsert
from app.services.payslip_service import payslip_service
from app.utils.response_utils import ResponseWrapper, raise_http_error
from common_utils.auth.permission_checker import PermissionChecker
from app.core.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/payslips", tags=["Payslips"])


@router.get("/", response_model=dict, status_code=status.HTTP_200_OK)
async def get_payslips(
    page: int = Query(0, ge=0, description="Zero-based page number"),
    size: int = Query(10, ge=1, le=500, description="Items per page"),
    year: Optional[int] = Query(None, description="Filter by year"),
    month: Optional[str] = Query(None, description="Filter by month name (case-insensitive)"),
    search: Optional[str] = Query(None, description="Substring match on the driver name"),
    rick: Optional[str] = Query(None, description="Exact driver RICK id"),
    status_filter: Optional[str] = Query(None, alias="status", description="Exact payslip status"),
    sort: Dict[str, Any] = Depends(sort_params),
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["payslips.view"]))
):
    try:
        data = list_response(
            payslip_crud, db, page=page, size=size, year=year, month=month, search=search,
            identity=rick, status=status_filter, **sort
        )
        return ResponseWrapper.success(data=data, message="Payslips retrieved successfully")
    except Exception as e:
        raise_http_error(e, "fetching payslips")


@router.get("/summary", response_model=dict, status_code=status.HTTP_200_OK)
async def get_payslip_summary(
    year: int = Query(..., ge=1900, le=9999),
    month: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["payslips.view"]))
):
    try:
        summary = payslip_service.summary(db, year=year, month=month)
        return ResponseWrapper.success(data=summary, message="Payslip summary retrieved successfully")
    except Exception as e:
        raise_http_error(e, "building payslip summary")


@router.get("/driver/{rick}", response_model=dict, status_code=status.HTTP_200_OK)
async def get_driver_payslips(
    rick: str,
    year: Optional[int] = Query(None),
    month: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["payslips.view"]))
):
    """Every payslip of one driver, newest month first"""
    try:
        slips = payslip_service.list_by_identity(db, identity=rick, year=year, month=month)
        return ResponseWrapper.success(
            data={"payslips": [serialize_record(s) for s in slips]},
            message="Driver payslips retrieved successfully"
        )
    except Exception as e:
        raise_http_error(e, f"fetching payslips of {rick}")


@router.post("/generate", response_model=dict, status_code=status.HTTP_200_OK)
async def generate_payslip(
    request: PayslipGenerateRequest,
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["payslips.generate"]))
):
    """Preview a payslip from ledger data; nothing is stored"""
    try:
        preview = payslip_service.generate(
            db, identity=request.rick, month_name=request.month_name, year=request.year
        )
        return ResponseWrapper.success(data={"payslip": preview}, message="Payslip generated successfully")
    except Exception as e:
        raise_http_error(e, f"generating payslip for {request.rick}")


@router.get("/generate/{rick}/{month}/{year}", response_model=dict, status_code=status.HTTP_200_OK)
async def generate_payslip_by_params(
    rick: str,
    month: str,
    year: int = Path(..., ge=1900, le=9999),
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["payslips.generate"]))
):
    try:
        preview = payslip_service.generate(db, identity=rick, month_name=month, year=year)
        return ResponseWrapper.success(data={"payslip": preview}, message="Payslip generated successfully")
    except Exception as e:
        raise_http_error(e, f"generating payslip for {rick}")


@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
async def insert_payslip(
    payload: PayslipInsert,
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["payslips.create"]))
):
    """Store a payslip, typically one returned by /generate"""
    try:
        payslip = payslip_service.insert(db, payload)
        return ResponseWrapper.created(data=serialize_record(payslip), message="Payslip inserted successfully")
    except Exception as e:
        db.rollback()
        raise_http_error(e, "inserting payslip")


register_record_routes(router, payslip_crud, "payslips")
