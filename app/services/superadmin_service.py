from typing import Iterable, List

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.config import settings
from app.core.logging_config import get_logger
from app.models.iam import Permission, Role, role_permissions
from app.schemas.iam.superadmin import CompletenessEnum, SuperadminRepairResult, SuperadminStatus
from app.utils.upsert import insert_ignore

logger = get_logger(__name__)


class SuperadminService:
    """
    Keeps the superadmin role holding every permission.

    The role is found by name (``settings.SUPERADMIN_ROLE_NAME``). Grants go
    through INSERT ... ON CONFLICT DO NOTHING, so concurrent grants of the
    same permission collapse into one association row.
    """

    @staticmethod
    def find_role(db: Session):
        return db.query(Role).filter(Role.name == settings.SUPERADMIN_ROLE_NAME).first()

    @staticmethod
    def is_superadmin(role: Role) -> bool:
        return role is not None and role.name == settings.SUPERADMIN_ROLE_NAME

    @staticmethod
    def get_or_create_role(db: Session) -> Role:
        """
        Return the superadmin role, creating it when it is missing.

        Does not commit; callers own the transaction.
        """
        role = SuperadminService.find_role(db)
        if role is not None:
            return role

        created = insert_ignore(db, Role.__table__, [{
            "name": settings.SUPERADMIN_ROLE_NAME,
            "description": settings.SUPERADMIN_ROLE_DESCRIPTION,
            "is_active": True,
        }])
        if created:
            logger.warning(f"Role '{settings.SUPERADMIN_ROLE_NAME}' was missing and has been created")
        return db.query(Role).filter(Role.name == settings.SUPERADMIN_ROLE_NAME).one()

    @staticmethod
    def grant(db: Session, permission_ids: Iterable[int]) -> int:
        """
        Grant permissions to superadmin, skipping ones it already holds.

        Returns the number of newly created grants. Does not commit.
        """
        ids = sorted(set(permission_ids))
        if not ids:
            return 0
        role = SuperadminService.get_or_create_role(db)
        rows = [{"role_id": role.role_id, "permission_id": pid} for pid in ids]
        granted = insert_ignore(db, role_permissions, rows)
        db.expire(role, ["permissions"])
        return granted

    @staticmethod
    def _missing_permission_ids(db: Session, role_id: int) -> List[int]:
        granted = select(role_permissions.c.permission_id).where(role_permissions.c.role_id == role_id)
        rows = (
            db.query(Permission.permission_id)
            .filter(Permission.permission_id.not_in(granted))
            .order_by(Permission.permission_id)
            .all()
        )
        return [row.permission_id for row in rows]

    @staticmethod
    def get_status(db: Session) -> SuperadminStatus:
        """Compare the permission table against the superadmin grants. Read only."""
        total = db.query(func.count(Permission.permission_id)).scalar() or 0
        role = SuperadminService.find_role(db)

        if role is None:
            held, missing = 0, total
        else:
            held = (
                db.query(func.count())
                .select_from(role_permissions)
                .filter(role_permissions.c.role_id == role.role_id)
                .scalar()
                or 0
            )
            missing = len(SuperadminService._missing_permission_ids(db, role.role_id))

        return SuperadminStatus(
            totalPermissions=total,
            superadminPermissions=held,
            missingCount=missing,
            status=CompletenessEnum.COMPLETE if missing == 0 else CompletenessEnum.INCOMPLETE,
        )

    @staticmethod
    def repair(db: Session) -> SuperadminRepairResult:
        """
        Grant every permission superadmin is missing and commit.

        Never revokes anything; a second call in a row grants nothing.
        """
        try:
            role = SuperadminService.get_or_create_role(db)
            missing = SuperadminService._missing_permission_ids(db, role.role_id)
            granted = SuperadminService.grant(db, missing)
            db.commit()
        except Exception:
            db.rollback()
            raise

        if granted:
            logger.info(f"Superadmin repair granted {granted} missing permission(s)")
        else:
            logger.debug("Superadmin repair found nothing to grant")
        return SuperadminRepairResult(grantedCount=granted)

    @staticmethod
    def ensure_on_startup(db: Session) -> SuperadminRepairResult:
        result = SuperadminService.repair(db)
        status = SuperadminService.get_status(db)
        logger.info(
            f"Superadmin holds {status.superadminPermissions}/{status.totalPermissions} permissions "
            f"({status.status.value}) after startup repair granted {result.grantedCount}"
        )
        return result


superadmin_service = SuperadminService()
