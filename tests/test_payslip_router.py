"""
Test suite for payslip endpoints.

Tests cover:
- Generating a payslip preview from ledger rows
- Opening balance carried from the previous payslip
- Storing payslips and listing them per driver
- Period summaries
"""
import pytest
from fastapi import status

from app.crud.dynamic_record import finance_crud, payslip_crud
from app.models.dynamic_record import Payslip
from app.services.payslip_service import month_index

BASE_URL = "/api/v1/payslips"


@pytest.fixture
def january_ledger(seeded_db):
    return finance_crud.create_record(
        seeded_db,
        fields={
            "rick": "R1",
            "name": "Ali",
            "plate": "D 123",
            "date": "2024-01-31",
            "total_salary": "1000",
            "salik": "-50",
            "fine": "0",
        },
        year=2024,
        month_name="January",
    )


@pytest.fixture
def january_payslips(seeded_db):
    rows = [
        {"rick": "R1", "driver_name": "Ali", "gross_salary": "1000", "net_salary": "900", "status": "paid"},
        {"rick": "R2", "driver_name": "Omar", "gross_salary": "2000", "net_salary": "1500", "status": "pending"},
        {"rick": "R3", "driver_name": "Sara", "gross_salary": "3000", "net_salary": "2500"},
    ]
    return [
        payslip_crud.create_record(seeded_db, fields=fields, year=2024, month_name="January")
        for fields in rows
    ]


def test_month_index():
    assert month_index("January") == 1
    assert month_index(" dec ") == 12
    assert month_index("Smarch") == 0


class TestGeneratePayslip:

    def test_preview_from_ledger(self, client, january_ledger, manager_token):
        response = client.post(
            f"{BASE_URL}/generate",
            json={"rick": "R1", "month_name": "January", "year": 2024},
            headers={"Authorization": manager_token},
        )

        assert response.status_code == status.HTTP_200_OK
        payslip = response.json()["data"]["payslip"]
        assert payslip["driver_name"] == "Ali"
        assert payslip["plate"] == "D 123"
        assert payslip["obopm"] == 0
        assert payslip["payslip_array"] == [
            {"field": "total_salary", "label": "Total Salary", "amount": 1000.0, "type": "DR"},
            {"field": "salik", "label": "Salik", "amount": 50.0, "type": "CR"},
        ]
        assert (payslip["total_cr"], payslip["total_dr"]) == (50.0, 1000.0)

    def test_preview_by_path(self, client, january_ledger, manager_token):
        response = client.get(f"{BASE_URL}/generate/R1/january/2024", headers={"Authorization": manager_token})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["payslip"]["rick"] == "R1"

    def test_no_ledger_rows(self, client, january_ledger, manager_token):
        response = client.post(
            f"{BASE_URL}/generate",
            json={"rick": "R1", "month_name": "February", "year": 2024},
            headers={"Authorization": manager_token},
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_opening_balance_from_previous_month(self, client, seeded_db, january_ledger, manager_token):
        payslip_crud.create_record(
            seeded_db, fields={"rick": "R1", "obopm": "300"}, year=2023, month_name="December"
        )
        payslip_crud.create_record(
            seeded_db, fields={"rick": "R1", "obopm": "999"}, year=2024, month_name="March"
        )

        response = client.get(f"{BASE_URL}/generate/R1/January/2024", headers={"Authorization": manager_token})

        assert response.json()["data"]["payslip"]["obopm"] == 300

    def test_driver_cannot_generate(self, client, january_ledger, driver_token):
        response = client.post(
            f"{BASE_URL}/generate",
            json={"rick": "R1", "month_name": "January", "year": 2024},
            headers={"Authorization": driver_token},
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestInsertPayslip:

    def test_insert_generated_payslip(self, client, seeded_db, january_ledger, manager_token):
        preview = client.get(
            f"{BASE_URL}/generate/R1/January/2024", headers={"Authorization": manager_token}
        ).json()["data"]["payslip"]

        response = client.post(
            f"{BASE_URL}/", json={**preview, "status": "draft"}, headers={"Authorization": manager_token}
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()["data"]
        assert data["rick"] == "R1"
        assert data["status"] == "draft"
        assert len(data["payslip_array"]) == 2
        stored = seeded_db.query(Payslip).one()
        assert "payslip_array" not in stored.fields
        assert stored.entries[1]["type"] == "CR"

    def test_insert_catalogues_new_fields(self, client, seeded_db, manager_token, admin_token):
        payload = {"rick": "0042", "driver_name": "Ali", "net_salary": 1500, "month_name": "January", "year": 2024}
        response = client.post(f"{BASE_URL}/", json=payload, headers={"Authorization": manager_token})
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["data"]["rick"] == "0042"

        fields = client.get(f"{BASE_URL}/fields", headers={"Authorization": manager_token}).json()["data"]
        assert [(f["key"], f["type"], f["catalogued"]) for f in fields] == [
            ("rick", "text", True),
            ("driver_name", "text", True),
            ("net_salary", "currency", True),
        ]

        response = client.put(
            f"{BASE_URL}/fields/net_salary", json={"label": "Net Pay"}, headers={"Authorization": admin_token}
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["label"] == "Net Pay"

        client.post(f"{BASE_URL}/", json={**payload, "rick": "R2"}, headers={"Authorization": manager_token})
        fields = client.get(f"{BASE_URL}/fields", headers={"Authorization": manager_token}).json()["data"]
        assert len(fields) == 3

    def test_negative_amount_is_rejected(self, client, seeded_db, manager_token):
        response = client.post(
            f"{BASE_URL}/",
            json={
                "rick": "R1",
                "month_name": "January",
                "year": 2024,
                "payslip_array": [{"field": "salik", "amount": -5, "type": "CR"}],
            },
            headers={"Authorization": manager_token},
        )

        assert response.status_code == 422


class TestListPayslips:

    def test_driver_history_newest_first(self, client, seeded_db, driver_token):
        for year, month in [(2024, "January"), (2023, "December"), (2024, "March")]:
            payslip_crud.create_record(seeded_db, fields={"rick": "R1"}, year=year, month_name=month)
        payslip_crud.create_record(seeded_db, fields={"rick": "R2"}, year=2024, month_name="April")

        response = client.get(f"{BASE_URL}/driver/R1", headers={"Authorization": driver_token})

        assert response.status_code == status.HTTP_200_OK
        periods = [(p["year"], p["month_name"]) for p in response.json()["data"]["payslips"]]
        assert periods == [(2024, "March"), (2024, "January"), (2023, "December")]

    def test_filters(self, client, january_payslips, driver_token):
        response = client.get(
            f"{BASE_URL}/", params={"status": "pending"}, headers={"Authorization": driver_token}
        )
        assert [r["rick"] for r in response.json()["data"]["records"]] == ["R2"]

        response = client.get(f"{BASE_URL}/", params={"rick": "R3"}, headers={"Authorization": driver_token})
        assert [r["driver_name"] for r in response.json()["data"]["records"]] == ["Sara"]

    def test_summary(self, client, january_payslips, driver_token):
        response = client.get(
            f"{BASE_URL}/summary", params={"year": 2024, "month": "January"}, headers={"Authorization": driver_token}
        )

        assert response.status_code == status.HTTP_200_OK
        summary = response.json()["data"]
        assert summary["period"] == "January 2024"
        assert summary["total_payslips"] == 3
        assert summary["total_gross_salary"] == 6000
        assert summary["avg_net_salary"] == 1633.33
        assert summary["statusBreakdown"] == [
            {"status": "paid", "count": 1},
            {"status": "pending", "count": 1},
            {"status": None, "count": 1},
        ]

    def test_summary_of_empty_period(self, client, seeded_db, driver_token):
        response = client.get(f"{BASE_URL}/summary", params={"year": 2030}, headers={"Authorization": driver_token})

        summary = response.json()["data"]
        assert summary["total_payslips"] == 0
        assert summary["total_gross_salary"] is None
