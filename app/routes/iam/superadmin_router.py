from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.database.session import get_db
from app.services.superadmin_service import SuperadminService
from common_utils.auth.permission_checker import PermissionChecker
from app.utils.response_utils import ResponseWrapper, raise_http_error
from app.core.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/superadmin/permissions",
    tags=["IAM Superadmin"]
)


@router.get("/status", response_model=dict, status_code=status.HTTP_200_OK)
async def get_superadmin_status(
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["roles.view"]))
):
    """How many permissions superadmin holds out of all of them"""
    try:
        result = SuperadminService.get_status(db)
        return ResponseWrapper.success(
            data=result,
            message=f"Superadmin has {result.superadminPermissions}/{result.totalPermissions} permissions"
        )
    except Exception as e:
        raise_http_error(e, "reading superadmin permission status")


@router.post("/repair", response_model=dict, status_code=status.HTTP_200_OK)
async def repair_superadmin_permissions(
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["roles.assign"]))
):
    """Grant superadmin whatever it is missing"""
    try:
        result = SuperadminService.repair(db)
        message = (
            f"Granted {result.grantedCount} missing permission(s) to superadmin"
            if result.grantedCount else "Superadmin already has all permissions"
        )
        return ResponseWrapper.success(data=result, message=message)
    except Exception as e:
        db.rollback()
        raise_http_error(e, "repairing superadmin permissions")
