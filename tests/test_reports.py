"""
Dashboards and reports.
"""
from datetime import date
from decimal import Decimal
from io import BytesIO

import pytest
from openpyxl import load_workbook

from billing.reconciliation import record_collection
from retailers.models import Retailer

pytestmark = pytest.mark.django_db


@pytest.fixture
def collected(make_bill, staff_user, other_staff):
    """Three bills, two of them with collections recorded today"""
    first = make_bill("1000", assigned_to=staff_user, retailer_name="Sharma Stores",
                      bill_date=date(2026, 1, 5))
    second = make_bill("500", assigned_to=other_staff, retailer_name="Gupta Traders",
                       bill_date=date(2026, 2, 10))
    make_bill("700", retailer_name="Verma Agency", bill_date=date(2026, 3, 1))

    record_collection(first.pk, Decimal("400"), "cash", staff_user)
    record_collection(first.pk, Decimal("100"), "upi", staff_user,
                      payment_details={"upiId": "s@upi", "upiTransactionId": "T1"})
    record_collection(second.pk, Decimal("500"), "cheque", other_staff,
                      payment_details={"bankName": "SBI", "chequeNumber": "000123"})
    return first, second


class TestDashboards:
    def test_admin_dashboard(self, admin_client, collected):
        response = admin_client.get("/api/dashboard/admin")
        assert response.status_code == 200
        assert response.data["total_paid_amount"] == Decimal("1000.00")
        assert response.data["collections_today"] == 3
        assert response.data["total_staff"] == 2
        assert len(response.data["recent_collections"]) == 3
        assert response.data["bills_by_status"]["paid"] == 1

    def test_staff_dashboard(self, staff_client, collected):
        response = staff_client.get("/api/dashboard/staff")
        assert response.status_code == 200
        assert response.data["bills_assigned_today"] == 1
        assert response.data["today_amount_assigned"] == Decimal("1000.00")
        assert response.data["today_amount_collected"] == Decimal("500.00")
        assert response.data["amount_remaining_today"] == Decimal("500.00")

    def test_dashboards_are_role_specific(self, admin_client, staff_client):
        assert staff_client.get("/api/dashboard/admin").status_code == 403
        assert admin_client.get("/api/dashboard/staff").status_code == 403


class TestBillsReport:
    def test_all_bills_without_dates(self, admin_client, collected):
        response = admin_client.get("/api/reports/bills")
        assert response.status_code == 200
        assert response.data["summary"]["total_bills"] == 3
        assert response.data["summary"]["total_settled"] == Decimal("1000.00")

        sharma = next(b for b in response.data["bills"] if b["retailer"] == "Sharma Stores")
        assert [c["payment_mode"] for c in sharma["collections"]] == ["cash", "upi"]
        assert sharma["collections"][0]["collected_by_name"] == "Ravi Kumar"

    def test_date_range_on_bill_date(self, admin_client, collected):
        response = admin_client.get("/api/reports/bills?start_date=2026-02-01&end_date=2026-02-28")
        assert [b["retailer"] for b in response.data["bills"]] == ["Gupta Traders"]

    def test_reversed_range(self, admin_client):
        response = admin_client.get("/api/reports/bills?start_date=2026-03-01&end_date=2026-02-01")
        assert response.status_code == 400

    def test_export(self, admin_client, collected):
        response = admin_client.get("/api/reports/bills/export")
        assert response.status_code == 200

        rows = list(load_workbook(BytesIO(response.content)).active.iter_rows(values_only=True))
        assert rows[0][0] == "Bill Number"
        # two collections + one collection + one bill without any
        assert len(rows) == 5
        assert any(row[7] == "No collections" for row in rows[1:])
        assert any(row[11] == "bankName: SBI, chequeNumber: 000123" for row in rows[1:])

    def test_staff_cannot_read_reports(self, staff_client):
        assert staff_client.get("/api/reports/bills").status_code == 403


class TestTodayCollections:
    def test_only_bills_paid_today(self, admin_client, collected):
        response = admin_client.get("/api/reports/today-collections")
        assert response.status_code == 200
        assert response.data["total_collected"] == Decimal("1000.00")
        assert {b["retailer"] for b in response.data["bills"]} == {"Sharma Stores", "Gupta Traders"}

    def test_export(self, admin_client, collected):
        response = admin_client.get("/api/reports/today-collections/export")
        rows = list(load_workbook(BytesIO(response.content)).active.iter_rows(values_only=True))
        assert len(rows) == 4


class TestDSRSummary:
    def test_per_staff_totals(self, admin_client, collected, staff_user, admin_user):
        Retailer.objects.create(name="Sharma Stores", address1="x", assigned_to=staff_user, created_by=admin_user)
        Retailer.objects.create(name="Kapoor Mart", address1="y", assigned_to=staff_user, created_by=admin_user)

        response = admin_client.get("/api/reports/dsr-summary")
        assert response.status_code == 200
        assert response.data["total_collected"] == Decimal("1000.00")

        ravi = next(s for s in response.data["staff"] if s["staff_name"] == "Ravi Kumar")
        assert ravi["total_collected"] == Decimal("500.00")
        assert ravi["assigned_retailers"] == 2
        assert ravi["collected_retailers"] == 1
        assert ravi["by_payment_mode"]["cash"] == {"amount": Decimal("400.00"), "count": 1}
        assert ravi["by_payment_mode"]["cheque"] == {"amount": Decimal("0.00"), "count": 0}

    def test_other_day_is_empty(self, admin_client, collected):
        response = admin_client.get("/api/reports/dsr-summary?date=2020-01-01")
        assert response.data["total_collected"] == Decimal("0.00")

    def test_invalid_date(self, admin_client):
        assert admin_client.get("/api/reports/dsr-summary?date=31-31-2026").status_code == 400
