"""
Superadmin consistency: the role must end up holding every permission.

Tests cover:
- Status of a freshly seeded database
- Reactive grant when a permission is created
- Drift detection and repair
- Repair idempotency and missing-role handling
- HTTP status/repair endpoints
"""
import pytest
from fastapi import status
from sqlalchemy import delete

from app.core.exceptions import ForbiddenError
from app.crud.iam import permission_crud, role_crud
from app.models.iam import Permission, Role, role_permissions
from app.schemas.iam import PermissionCreate
from app.schemas.iam.superadmin import CompletenessEnum
from app.seed.seed_data import PERMISSION_MATRIX
from app.services.superadmin_service import SuperadminService

SEEDED_PERMISSIONS = sum(len(actions) for actions in PERMISSION_MATRIX.values())


def _superadmin(db):
    return db.query(Role).filter(Role.name == "superadmin").one()


def _revoke(db, permission_name):
    role = _superadmin(db)
    permission = db.query(Permission).filter(Permission.name == permission_name).one()
    db.execute(
        delete(role_permissions).where(
            role_permissions.c.role_id == role.role_id,
            role_permissions.c.permission_id == permission.permission_id,
        )
    )
    db.commit()


class TestSuperadminService:

    def test_seeded_superadmin_is_complete(self, seeded_db):
        result = SuperadminService.get_status(seeded_db)

        assert result.totalPermissions == SEEDED_PERMISSIONS
        assert result.superadminPermissions == SEEDED_PERMISSIONS
        assert result.missingCount == 0
        assert result.status == CompletenessEnum.COMPLETE

    def test_new_permission_is_granted_immediately(self, seeded_db):
        created = permission_crud.create(
            seeded_db, obj_in=PermissionCreate(resource="fuel", action="view")
        )

        assert created.name == "fuel.view"
        assert created in _superadmin(seeded_db).permissions
        result = SuperadminService.get_status(seeded_db)
        assert result.totalPermissions == SEEDED_PERMISSIONS + 1
        assert result.status == CompletenessEnum.COMPLETE

    def test_grant_does_not_duplicate(self, seeded_db):
        permission = permission_crud.get_by_name(seeded_db, name="reports.view")

        assert SuperadminService.grant(seeded_db, [permission.permission_id]) == 0
        seeded_db.commit()
        rows = seeded_db.query(role_permissions).filter(
            role_permissions.c.role_id == _superadmin(seeded_db).role_id,
            role_permissions.c.permission_id == permission.permission_id,
        ).count()
        assert rows == 1

    def test_drift_is_reported_then_repaired(self, seeded_db):
        _revoke(seeded_db, "finances.upload")

        drifted = SuperadminService.get_status(seeded_db)
        assert drifted.missingCount == 1
        assert drifted.superadminPermissions == SEEDED_PERMISSIONS - 1
        assert drifted.status == CompletenessEnum.INCOMPLETE

        assert SuperadminService.repair(seeded_db).grantedCount == 1

        repaired = SuperadminService.get_status(seeded_db)
        assert repaired.missingCount == 0
        assert repaired.status == CompletenessEnum.COMPLETE

    def test_repair_is_idempotent(self, seeded_db):
        _revoke(seeded_db, "roles.assign")
        _revoke(seeded_db, "payslips.generate")

        assert SuperadminService.repair(seeded_db).grantedCount == 2
        assert SuperadminService.repair(seeded_db).grantedCount == 0

    def test_status_without_role_is_read_only(self, test_db):
        test_db.add_all([
            Permission(name="a.view", resource="a", action="view"),
            Permission(name="b.view", resource="b", action="view"),
        ])
        test_db.commit()

        result = SuperadminService.get_status(test_db)

        assert result.totalPermissions == 2
        assert result.superadminPermissions == 0
        assert result.missingCount == 2
        assert result.status == CompletenessEnum.INCOMPLETE
        assert SuperadminService.find_role(test_db) is None

    def test_repair_creates_missing_role(self, test_db):
        test_db.add(Permission(name="a.view", resource="a", action="view"))
        test_db.commit()

        result = SuperadminService.repair(test_db)

        assert result.grantedCount == 1
        role = SuperadminService.find_role(test_db)
        assert role is not None
        assert [p.name for p in role.permissions] == ["a.view"]

    def test_startup_repair_completes_the_role(self, seeded_db):
        _revoke(seeded_db, "users.delete")

        SuperadminService.ensure_on_startup(seeded_db)

        assert SuperadminService.get_status(seeded_db).status == CompletenessEnum.COMPLETE

    def test_superadmin_cannot_be_reassigned(self, seeded_db):
        with pytest.raises(ForbiddenError):
            role_crud.assign_permissions(
                seeded_db, role_id=_superadmin(seeded_db).role_id, permission_ids=[1]
            )


class TestSuperadminEndpoints:
    """Test cases for /api/v1/iam/superadmin/permissions"""

    STATUS_URL = "/api/v1/iam/superadmin/permissions/status"
    REPAIR_URL = "/api/v1/iam/superadmin/permissions/repair"

    def test_status_then_repair(self, client, seeded_db, superadmin_token):
        _revoke(seeded_db, "vehicles.update")

        response = client.get(self.STATUS_URL, headers={"Authorization": superadmin_token})
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "INCOMPLETE"
        assert body["data"]["missingCount"] == 1

        response = client.post(self.REPAIR_URL, headers={"Authorization": superadmin_token})
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["grantedCount"] == 1

        response = client.get(self.STATUS_URL, headers={"Authorization": superadmin_token})
        assert response.json()["data"]["status"] == "COMPLETE"

    def test_second_repair_grants_nothing(self, client, superadmin_token):
        client.post(self.REPAIR_URL, headers={"Authorization": superadmin_token})
        response = client.post(self.REPAIR_URL, headers={"Authorization": superadmin_token})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["grantedCount"] == 0
        assert "already has all permissions" in response.json()["message"]

    def test_repair_requires_assign_permission(self, client, manager_token):
        response = client.post(self.REPAIR_URL, headers={"Authorization": manager_token})

        assert response.status_code == status.HTTP_403_FORBIDDEN
