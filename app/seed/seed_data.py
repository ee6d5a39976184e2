from sqlalchemy.orm import Session

from app.config import settings
from app.core.logging_config import get_logger
from app.crud.iam import permission_crud
from app.models.iam import Role, User
from app.schemas.iam import PermissionCreate
from app.services.superadmin_service import SuperadminService

logger = get_logger(__name__)

PERMISSION_MATRIX = {
    "users": ["view", "create", "update", "delete"],
    "drivers": ["view", "create", "update", "delete"],
    "vehicles": ["view", "create", "update", "delete"],
    "finances": ["view", "create", "update", "delete", "upload"],
    "payslips": ["view", "create", "generate", "update", "delete"],
    "roles": ["view", "create", "update", "delete", "assign"],
    "dashboard": ["view"],
    "reports": ["view", "export"],
}

# Role name -> permission names; "*" means everything outside role management
ROLE_DEFINITIONS = {
    "admin": ["*"],
    "manager": [
        "drivers.view", "vehicles.view", "finances.view", "finances.upload",
        "payslips.view", "payslips.generate", "payslips.create", "dashboard.view", "reports.view",
    ],
    "employee": ["dashboard.view", "payslips.view"],
    "driver": ["payslips.view"],
}


def seed_permissions(db: Session):
    """
    Seed the permission catalog (idempotent).

    Goes through permission_crud so every new permission is granted to
    superadmin as it is created.
    """
    for resource, actions in PERMISSION_MATRIX.items():
        for action in actions:
            name = f"{resource}.{action}"
            if permission_crud.get_by_name(db, name=name):
                logger.debug(f"Permission {name} already exists.")
                continue
            permission_crud.create(db, obj_in=PermissionCreate(
                resource=resource,
                action=action,
                description=f"{action.capitalize()} {resource}",
            ))
            logger.info(f"Permission {name} created.")


def seed_roles(db: Session):
    """
    Seed the default roles (idempotent). Existing roles keep whatever
    permissions an administrator has given them since.
    """
    all_permissions = permission_crud.get_multi_ordered(db)
    by_name = {p.name: p for p in all_permissions}

    for role_name, names in ROLE_DEFINITIONS.items():
        if db.query(Role).filter(Role.name == role_name).first():
            logger.debug(f"Role {role_name} already exists.")
            continue
        if names == ["*"]:
            permissions = [p for p in all_permissions if p.resource != "roles"]
        else:
            permissions = [by_name[n] for n in names if n in by_name]
        role = Role(name=role_name, description=f"Default {role_name} role", is_active=True)
        role.permissions = permissions
        db.add(role)
        logger.info(f"Role {role_name} created with {len(permissions)} permission(s).")
    db.commit()


def seed_users(db: Session):
    """One login per default role so a fresh install can be explored."""
    for role in db.query(Role).order_by(Role.role_id).all():
        if db.query(User).filter(User.role_id == role.role_id).first():
            continue
        db.add(User(
            username=role.name,
            email=f"{role.name}@example.com",
            role_id=role.role_id,
            is_active=True,
        ))
        logger.info(f"User '{role.name}' created for role {role.name}.")
    db.commit()


def seed_rbac(db: Session):
    """Seed permissions, roles and users, then make sure superadmin is complete."""
    seed_permissions(db)
    seed_roles(db)
    seed_users(db)
    result = SuperadminService.repair(db)
    if result.grantedCount:
        logger.warning(f"Superadmin was missing {result.grantedCount} permission(s); repaired during seeding")
    logger.info(f"✅ RBAC seeding completed ({settings.SUPERADMIN_ROLE_NAME} holds every permission).")
