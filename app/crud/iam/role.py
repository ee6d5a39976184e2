from typing import Any, Dict, List, Optional, Tuple, Union
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session
from app.config import settings
from app.core.exceptions import (
    ConflictError, DuplicateKeyError, ForbiddenError, ValidationFailedError,
)
from app.core.logging_config import get_logger
from app.crud.base import CRUDBase
from app.crud.iam.permission import permission_crud
from app.models.iam import Permission, Role, User, role_permissions
from app.schemas.iam import RoleCreate, RoleUpdate
from app.services.superadmin_service import SuperadminService

logger = get_logger(__name__)


class CRUDRole(CRUDBase[Role, RoleCreate, RoleUpdate]):
    def get_by_name(self, db: Session, *, name: str) -> Optional[Role]:
        return db.query(Role).filter(Role.name == name).first()

    def _resolve_permissions(self, db: Session, permission_ids: List[int]) -> List[Permission]:
        ids = list(dict.fromkeys(permission_ids))
        found = permission_crud.get_by_ids(db, ids=ids)
        unknown = [pid for pid in ids if pid not in found]
        if unknown:
            raise ValidationFailedError(
                "Unknown permission ids",
                details={"unknown_permission_ids": unknown},
            )
        return [found[pid] for pid in ids]

    def _user_count(self, db: Session, role_id: int) -> int:
        return db.query(func.count(User.user_id)).filter(User.role_id == role_id).scalar() or 0

    def create_with_permissions(self, db: Session, *, obj_in: RoleCreate) -> Role:
        if obj_in.name == settings.SUPERADMIN_ROLE_NAME:
            raise ForbiddenError(f"Role '{obj_in.name}' is managed by the system")
        if self.get_by_name(db, name=obj_in.name):
            raise DuplicateKeyError(f"Role '{obj_in.name}' already exists", details={"name": obj_in.name})

        permissions = self._resolve_permissions(db, obj_in.permission_ids)
        db_obj = Role(
            name=obj_in.name,
            description=obj_in.description,
            is_active=obj_in.is_active,
        )
        db_obj.permissions = permissions
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        logger.info(f"Role '{db_obj.name}' created with {len(permissions)} permission(s)")
        return db_obj

    def get_multi_with_counts(self, db: Session) -> List[Tuple[Role, int, int]]:
        """Every role with (user_count, permission_count)."""
        user_counts = (
            select(User.role_id, func.count(User.user_id).label("user_count"))
            .group_by(User.role_id)
            .subquery()
        )
        permission_counts = (
            select(role_permissions.c.role_id, func.count().label("permission_count"))
            .group_by(role_permissions.c.role_id)
            .subquery()
        )
        rows = (
            db.query(
                Role,
                func.coalesce(user_counts.c.user_count, 0),
                func.coalesce(permission_counts.c.permission_count, 0),
            )
            .outerjoin(user_counts, user_counts.c.role_id == Role.role_id)
            .outerjoin(permission_counts, permission_counts.c.role_id == Role.role_id)
            .order_by(Role.name)
            .all()
        )
        return [(role, int(users), int(perms)) for role, users, perms in rows]

    def update_with_permissions(
        self, db: Session, *, db_obj: Role, obj_in: Union[RoleUpdate, Dict[str, Any]]
    ) -> Role:
        if SuperadminService.is_superadmin(db_obj):
            raise ForbiddenError("The superadmin role cannot be modified")

        update_data = obj_in.model_dump(exclude_unset=True) if isinstance(obj_in, RoleUpdate) else dict(obj_in)
        permission_ids = update_data.pop("permission_ids", None)

        new_name = update_data.get("name")
        if new_name and new_name != db_obj.name:
            if new_name == settings.SUPERADMIN_ROLE_NAME:
                raise ForbiddenError(f"Role '{new_name}' is managed by the system")
            if db_obj.name in settings.PROTECTED_ROLE_NAMES:
                raise ConflictError(f"System role '{db_obj.name}' cannot be renamed")
            if self._user_count(db, db_obj.role_id):
                raise ConflictError(f"Role '{db_obj.name}' is assigned to users and cannot be renamed")
            if self.get_by_name(db, name=new_name):
                raise DuplicateKeyError(f"Role '{new_name}' already exists", details={"name": new_name})

        if permission_ids is not None:
            db_obj.permissions = self._resolve_permissions(db, permission_ids)

        for field, value in update_data.items():
            setattr(db_obj, field, value)

        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        logger.info(f"Role {db_obj.role_id} updated")
        return db_obj

    def assign_permissions(self, db: Session, *, role_id: int, permission_ids: List[int]) -> Role:
        """
        Replace the role's whole permission set in one transaction.
        """
        role = self.get_or_404(db, role_id, label="Role")
        if SuperadminService.is_superadmin(role):
            raise ForbiddenError("Superadmin permissions are managed automatically and cannot be assigned")
        if not permission_ids:
            raise ValidationFailedError("permission_ids must contain at least one id")

        permissions = self._resolve_permissions(db, permission_ids)
        try:
            db.execute(delete(role_permissions).where(role_permissions.c.role_id == role_id))
            db.execute(
                role_permissions.insert(),
                [{"role_id": role_id, "permission_id": p.permission_id} for p in permissions],
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(role)
        logger.info(f"Assigned {len(permissions)} permission(s) to role {role_id}")
        return role

    def delete_role(self, db: Session, *, role_id: int) -> str:
        role = self.get_or_404(db, role_id, label="Role")
        name = role.name
        if role.name in settings.PROTECTED_ROLE_NAMES:
            raise ConflictError(f"System role '{role.name}' cannot be deleted")

        users = self._user_count(db, role_id)
        if users:
            raise ConflictError(
                f"Role '{role.name}' is assigned to {users} user(s)",
                details={"user_count": users},
            )

        db.delete(role)
        db.commit()
        logger.info(f"Role {role_id} ('{name}') deleted")
        return name

    def get_users(self, db: Session, *, role_id: int, page: int = 0, size: int = 10) -> Tuple[int, List[User]]:
        self.get_or_404(db, role_id, label="Role")
        query = db.query(User).filter(User.role_id == role_id)
        total = query.count()
        users = query.order_by(User.created_at.desc(), User.user_id.desc()).offset(page * size).limit(size).all()
        return total, users


role_crud = CRUDRole(Role)
