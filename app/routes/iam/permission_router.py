from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from app.database.session import get_db
from app.schemas.iam import PermissionCreate, PermissionResponse, PermissionPaginationResponse
from app.crud.iam import permission_crud
from common_utils.auth.permission_checker import PermissionChecker
from app.utils.response_utils import ResponseWrapper, raise_http_error
from app.core.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/permissions",
    tags=["IAM Permissions"]
)


@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_permission(
    permission: PermissionCreate,
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["roles.create"]))
):
    """Create a new permission; superadmin is granted it immediately"""
    try:
        new_permission = permission_crud.create(db=db, obj_in=permission)
        return ResponseWrapper.created(
            data=PermissionResponse.model_validate(new_permission),
            message="Permission created successfully"
        )
    except Exception as e:
        db.rollback()
        raise_http_error(e, "creating permission")


@router.get("/", response_model=dict, status_code=status.HTTP_200_OK)
async def get_permissions(
    resource: Optional[str] = Query(None, description="Filter by resource"),
    grouped: bool = Query(False, description="Group permissions by resource"),
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["roles.view"]))
):
    """List permissions ordered by resource and action"""
    try:
        if grouped:
            groups = permission_crud.get_grouped(db, resource=resource)
            logger.info(f"Fetched permissions grouped into {len(groups)} resource(s)")
            return ResponseWrapper.success(data=groups, message="Permissions fetched successfully")

        permissions = permission_crud.get_multi_ordered(db, resource=resource)
        items = [PermissionResponse.model_validate(p) for p in permissions]
        logger.info(f"Fetched {len(items)} permissions")
        return ResponseWrapper.success(
            data=PermissionPaginationResponse(total=len(items), items=items),
            message="Permissions fetched successfully"
        )
    except Exception as e:
        raise_http_error(e, "fetching permissions")


@router.get("/{permission_id}", response_model=dict, status_code=status.HTTP_200_OK)
async def get_permission(
    permission_id: int,
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["roles.view"]))
):
    """Get a specific permission by ID"""
    try:
        permission = permission_crud.get_or_404(db, permission_id, label="Permission")
        return ResponseWrapper.success(
            data=PermissionResponse.model_validate(permission),
            message="Permission fetched successfully"
        )
    except Exception as e:
        raise_http_error(e, f"fetching permission {permission_id}")


@router.delete("/{permission_id}", status_code=status.HTTP_200_OK, response_model=dict)
async def delete_permission(
    permission_id: int,
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["roles.delete"]))
):
    """Delete a permission and every grant of it"""
    try:
        permission_crud.remove(db, id=permission_id)
        logger.info(f"Permission deleted: {permission_id}")
        return ResponseWrapper.deleted(
            data={"permission_id": permission_id},
            message=f"Permission {permission_id} deleted successfully"
        )
    except Exception as e:
        db.rollback()
        raise_http_error(e, f"deleting permission {permission_id}")
