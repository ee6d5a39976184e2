"""
Test suite for IAM role endpoints.

Tests cover:
- Creating roles with permissions
- Listing roles with user and permission counts
- Updating and renaming roles
- Replacing a role's permission set
- Deleting roles (protected, in use, unused)
"""
import pytest
from fastapi import status

from app.models.iam import Permission, Role, User

BASE_URL = "/api/v1/iam/roles"


def _permission_ids(db, *names):
    rows = db.query(Permission).filter(Permission.name.in_(names)).all()
    return [p.permission_id for p in rows]


def _role_id(db, name):
    return db.query(Role).filter(Role.name == name).one().role_id


@pytest.fixture
def auditor_role(client, seeded_db, superadmin_token):
    response = client.post(
        f"{BASE_URL}/",
        json={
            "name": "auditor",
            "description": "Read-only finance access",
            "permission_ids": _permission_ids(seeded_db, "finances.view", "reports.view"),
        },
        headers={"Authorization": superadmin_token},
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()["data"]


class TestCreateRole:

    def test_create_role(self, auditor_role):
        assert auditor_role["name"] == "auditor"
        assert sorted(p["name"] for p in auditor_role["permissions"]) == ["finances.view", "reports.view"]

    def test_duplicate_name(self, client, auditor_role, superadmin_token):
        response = client.post(
            f"{BASE_URL}/", json={"name": "auditor"}, headers={"Authorization": superadmin_token}
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["detail"]["error_code"] == "DUPLICATE_KEY"

    def test_cannot_create_superadmin(self, client, seeded_db, superadmin_token):
        response = client.post(
            f"{BASE_URL}/", json={"name": "superadmin"}, headers={"Authorization": superadmin_token}
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_permission_ids(self, client, seeded_db, superadmin_token):
        response = client.post(
            f"{BASE_URL}/",
            json={"name": "ghost", "permission_ids": [99999]},
            headers={"Authorization": superadmin_token},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["details"]["unknown_permission_ids"] == [99999]


class TestListRoles:

    def test_counts(self, client, seeded_db, superadmin_token):
        response = client.get(f"{BASE_URL}/", headers={"Authorization": superadmin_token})

        assert response.status_code == status.HTTP_200_OK
        items = {item["name"]: item for item in response.json()["data"]["items"]}
        assert items["superadmin"]["permission_count"] == seeded_db.query(Permission).count()
        assert items["driver"]["permission_count"] == 1
        assert items["driver"]["user_count"] == 1

    def test_role_users(self, client, seeded_db, superadmin_token):
        role_id = _role_id(seeded_db, "manager")

        response = client.get(f"{BASE_URL}/{role_id}/users", headers={"Authorization": superadmin_token})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert [u["username"] for u in data["users"]] == ["manager"]
        assert data["pagination"]["total"] == 1

    def test_get_unknown_role(self, client, superadmin_token):
        response = client.get(f"{BASE_URL}/424242", headers={"Authorization": superadmin_token})

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestUpdateRole:

    def test_rename_unused_role(self, client, auditor_role, superadmin_token):
        response = client.put(
            f"{BASE_URL}/{auditor_role['role_id']}",
            json={"name": "finance_auditor"},
            headers={"Authorization": superadmin_token},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["name"] == "finance_auditor"

    def test_rename_to_superadmin_is_forbidden(self, client, auditor_role, superadmin_token):
        response = client.put(
            f"{BASE_URL}/{auditor_role['role_id']}",
            json={"name": "superadmin"},
            headers={"Authorization": superadmin_token},
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_system_role_cannot_be_renamed(self, client, seeded_db, superadmin_token):
        response = client.put(
            f"{BASE_URL}/{_role_id(seeded_db, 'manager')}",
            json={"name": "boss"},
            headers={"Authorization": superadmin_token},
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_superadmin_cannot_be_modified(self, client, seeded_db, superadmin_token):
        response = client.put(
            f"{BASE_URL}/{_role_id(seeded_db, 'superadmin')}",
            json={"description": "changed"},
            headers={"Authorization": superadmin_token},
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestAssignPermissions:

    def test_replaces_whole_set(self, client, seeded_db, auditor_role, superadmin_token):
        ids = _permission_ids(seeded_db, "payslips.view")

        response = client.post(
            f"{BASE_URL}/{auditor_role['role_id']}/permissions",
            json={"permission_ids": ids},
            headers={"Authorization": superadmin_token},
        )

        assert response.status_code == status.HTTP_200_OK
        assert [p["name"] for p in response.json()["data"]["permissions"]] == ["payslips.view"]

    def test_empty_list_is_rejected(self, client, auditor_role, superadmin_token):
        response = client.post(
            f"{BASE_URL}/{auditor_role['role_id']}/permissions",
            json={"permission_ids": []},
            headers={"Authorization": superadmin_token},
        )

        assert response.status_code == 422

    def test_superadmin_is_forbidden(self, client, seeded_db, superadmin_token):
        response = client.post(
            f"{BASE_URL}/{_role_id(seeded_db, 'superadmin')}/permissions",
            json={"permission_ids": _permission_ids(seeded_db, "reports.view")},
            headers={"Authorization": superadmin_token},
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        superadmin = seeded_db.query(Role).filter(Role.name == "superadmin").one()
        seeded_db.refresh(superadmin)
        assert len(superadmin.permissions) == seeded_db.query(Permission).count()


class TestDeleteRole:

    def test_delete_unused_role(self, client, seeded_db, auditor_role, superadmin_token):
        response = client.delete(
            f"{BASE_URL}/{auditor_role['role_id']}", headers={"Authorization": superadmin_token}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["name"] == "auditor"
        assert seeded_db.query(Role).filter(Role.name == "auditor").first() is None

    def test_protected_role(self, client, seeded_db, superadmin_token):
        response = client.delete(
            f"{BASE_URL}/{_role_id(seeded_db, 'driver')}", headers={"Authorization": superadmin_token}
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_role_in_use(self, client, seeded_db, auditor_role, superadmin_token):
        seeded_db.add(User(username="aud", email="aud@example.com", role_id=auditor_role["role_id"]))
        seeded_db.commit()

        response = client.delete(
            f"{BASE_URL}/{auditor_role['role_id']}", headers={"Authorization": superadmin_token}
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["detail"]["details"]["user_count"] == 1
