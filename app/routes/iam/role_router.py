from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from app.database.session import get_db
from app.schemas.base import build_pagination
from app.schemas.iam import (
    RoleCreate, RoleUpdate, RoleResponse, RoleSummary, RolePermissionAssignment, RoleUserResponse
)
from app.crud.iam import role_crud
from common_utils.auth.permission_checker import PermissionChecker
from app.utils.response_utils import ResponseWrapper, raise_http_error
from app.core.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/roles",
    tags=["IAM Roles"]
)


@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_role(
    role: RoleCreate,
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["roles.create"]))
):
    try:
        new_role = role_crud.create_with_permissions(db, obj_in=role)
        return ResponseWrapper.created(
            data=RoleResponse.model_validate(new_role),
            message="Role created successfully"
        )
    except Exception as e:
        db.rollback()
        raise_http_error(e, "creating role")


@router.get("/", response_model=dict, status_code=status.HTTP_200_OK)
async def get_roles(
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["roles.view"]))
):
    """List roles with their user and permission counts"""
    try:
        rows = role_crud.get_multi_with_counts(db)
        items = [
            RoleSummary(
                role_id=role.role_id,
                name=role.name,
                description=role.description,
                is_active=role.is_active,
                user_count=user_count,
                permission_count=permission_count,
                created_at=role.created_at,
                updated_at=role.updated_at,
            )
            for role, user_count, permission_count in rows
        ]
        return ResponseWrapper.success(
            data={"total": len(items), "items": items},
            message="Roles fetched successfully"
        )
    except Exception as e:
        raise_http_error(e, "fetching roles")


@router.get("/{role_id}", response_model=dict, status_code=status.HTTP_200_OK)
async def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["roles.view"]))
):
    try:
        role = role_crud.get_or_404(db, role_id, label="Role")
        return ResponseWrapper.success(
            data=RoleResponse.model_validate(role),
            message="Role fetched successfully"
        )
    except Exception as e:
        raise_http_error(e, f"fetching role {role_id}")


@router.put("/{role_id}", response_model=dict, status_code=status.HTTP_200_OK)
async def update_role(
    role_id: int,
    role_update: RoleUpdate,
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["roles.update"]))
):
    try:
        role = role_crud.get_or_404(db, role_id, label="Role")
        updated = role_crud.update_with_permissions(db, db_obj=role, obj_in=role_update)
        return ResponseWrapper.success(
            data=RoleResponse.model_validate(updated),
            message=f"Role {role_id} updated successfully"
        )
    except Exception as e:
        db.rollback()
        raise_http_error(e, f"updating role {role_id}")


@router.post("/{role_id}/permissions", response_model=dict, status_code=status.HTTP_200_OK)
async def assign_role_permissions(
    role_id: int,
    assignment: RolePermissionAssignment,
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["roles.assign"]))
):
    """Replace the role's permission set with exactly the given ids"""
    try:
        role = role_crud.assign_permissions(db, role_id=role_id, permission_ids=assignment.permission_ids)
        return ResponseWrapper.success(
            data=RoleResponse.model_validate(role),
            message=f"Permissions assigned to role {role_id}"
        )
    except Exception as e:
        db.rollback()
        raise_http_error(e, f"assigning permissions to role {role_id}")


@router.delete("/{role_id}", response_model=dict, status_code=status.HTTP_200_OK)
async def delete_role(
    role_id: int,
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["roles.delete"]))
):
    try:
        name = role_crud.delete_role(db, role_id=role_id)
        return ResponseWrapper.deleted(
            data={"role_id": role_id, "name": name},
            message=f"Role '{name}' deleted successfully"
        )
    except Exception as e:
        db.rollback()
        raise_http_error(e, f"deleting role {role_id}")


@router.get("/{role_id}/users", response_model=dict, status_code=status.HTTP_200_OK)
async def get_role_users(
    role_id: int,
    page: int = Query(0, ge=0, description="Zero-based page number"),
    size: int = Query(10, ge=1, le=100, description="Items per page"),
    db: Session = Depends(get_db),
    _=Depends(PermissionChecker(["roles.view"]))
):
    try:
        total, users = role_crud.get_users(db, role_id=role_id, page=page, size=size)
        return ResponseWrapper.success(
            data={
                "users": [RoleUserResponse.model_validate(u) for u in users],
                "pagination": build_pagination(page, size, total),
            },
            message="Role users fetched successfully"
        )
    except Exception as e:
        raise_http_error(e, f"fetching users of role {role_id}")
