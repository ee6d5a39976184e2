from itertools import groupby
from typing import Dict, List, Optional
from pydantic import BaseModel
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from app.models.iam import Permission
from app.schemas.iam import PermissionCreate, PermissionGroup, PermissionResponse
from app.crud.base import CRUDBase
from app.core.exceptions import DuplicateKeyError
from app.core.logging_config import get_logger
from app.services.superadmin_service import SuperadminService

logger = get_logger(__name__)


class CRUDPermission(CRUDBase[Permission, PermissionCreate, BaseModel]):
    def get_by_name(self, db: Session, *, name: str) -> Optional[Permission]:
        return db.query(Permission).filter(Permission.name == name).first()

    def create(self, db: Session, *, obj_in: PermissionCreate) -> Permission:
        """
        Create a permission and grant it to superadmin in the same transaction.
        """
        if self.get_by_name(db, name=obj_in.name):
            raise DuplicateKeyError(
                f"Permission '{obj_in.name}' already exists",
                details={"name": obj_in.name},
            )

        db_obj = Permission(
            name=obj_in.name,
            resource=obj_in.resource,
            action=obj_in.action,
            description=obj_in.description,
        )
        try:
            db.add(db_obj)
            db.flush()  # Flush to get the permission_id
            SuperadminService.grant(db, [db_obj.permission_id])
            db.commit()
        except IntegrityError:
            db.rollback()
            # Lost a race against a concurrent create of the same name
            raise DuplicateKeyError(
                f"Permission '{obj_in.name}' already exists",
                details={"name": obj_in.name},
            )
        except Exception:
            db.rollback()
            raise

        db.refresh(db_obj)
        logger.info(f"Permission '{db_obj.name}' created and granted to superadmin")
        return db_obj

    def get_multi_ordered(self, db: Session, *, resource: Optional[str] = None) -> List[Permission]:
        query = db.query(Permission)
        if resource:
            query = query.filter(Permission.resource == resource)
        return query.order_by(Permission.resource, Permission.action, Permission.permission_id).all()

    def get_grouped(self, db: Session, *, resource: Optional[str] = None) -> List[PermissionGroup]:
        permissions = self.get_multi_ordered(db, resource=resource)
        return [
            PermissionGroup(
                resource=group_resource,
                permissions=[PermissionResponse.model_validate(p) for p in items],
            )
            for group_resource, items in groupby(permissions, key=lambda p: p.resource)
        ]

    def get_by_ids(self, db: Session, *, ids: List[int]) -> Dict[int, Permission]:
        if not ids:
            return {}
        rows = db.query(Permission).filter(Permission.permission_id.in_(ids)).all()
        return {p.permission_id: p for p in rows}


permission_crud = CRUDPermission(Permission)
