from typing import Iterable

from sqlalchemy import exists
from sqlalchemy.orm import Session

from app.core.logging_config import get_logger
from app.models.iam import Permission, Role, role_permissions

logger = get_logger(__name__)


def has_permission(db: Session, role_name: str, permission_name: str) -> bool:
    """
    True when ``role_name`` is an active role holding ``permission_name``.

    Always a fresh lookup against the association table; grants may change
    between requests.
    """
    if not role_name or not permission_name:
        return False

    stmt = exists().where(
        role_permissions.c.role_id == Role.role_id,
        role_permissions.c.permission_id == Permission.permission_id,
        Role.name == role_name,
        Role.is_active.is_(True),
        Permission.name == permission_name,
    )
    return bool(db.query(stmt).scalar())


def has_any_permission(db: Session, role_name: str, permission_names: Iterable[str]) -> bool:
    names = list(permission_names)
    for name in names:
        if has_permission(db, role_name, name):
            return True
    logger.debug(f"Role '{role_name}' holds none of {names}")
    return False
