"""
Spreadsheet import pipeline: column location, row handling, event stream
and upload cleanup.
"""
import os
from decimal import Decimal

import pytest

from billing.importers import BillImporter
from billing.models import Bill
from helpers import read_events, xlsx_upload
from imports.pipeline import ImportStructureError, SpreadsheetImporter
from imports.stream import ImportStream, save_upload
from inventory.importers import ProductImporter
from inventory.models import Product
from retailers.importers import RetailerImporter
from retailers.models import Retailer

pytestmark = pytest.mark.django_db

PRODUCT_HEADER = ["Code", "Company", "MRP", "Price", "Product Name", "Weight", "Scheme", "Stock"]


def product_rows(*rows):
    return [PRODUCT_HEADER, *rows]


class TestLocateColumns:
    def test_header_claimed_once(self):
        index = RetailerImporter.locate_columns(
            ["Retailer Name", "Address 1", "Address 2", "Day Assigned", "Assigned To"]
        )
        assert index == {
            "name": 0, "address1": 1, "address2": 2, "day_assigned": 3, "assigned_to": 4,
        }

    def test_case_insensitive_substring(self):
        index = ProductImporter.locate_columns(
            ["PRODUCT CODE", "product name", "Selling Price", "weight (ltr)", "Stock Qty"]
        )
        assert index["code"] == 0
        assert index["name"] == 1
        assert index["price"] == 2

    def test_missing_required_columns(self):
        with pytest.raises(ImportStructureError) as exc:
            ProductImporter.locate_columns(["Code", "Product Name", "Price"])
        assert "weight" in str(exc.value)
        assert "stock" in str(exc.value)

    def test_bill_columns_prefer_specific_headers(self):
        index = BillImporter.locate_columns(
            ["Bill No", "Bill Date", "Due Date", "Retailer", "Bill Amount", "Received", "Staff", "Day"]
        )
        assert index["bill_date"] == 1
        assert index["due_date"] == 2
        assert index["amount"] == 4
        assert index["received"] == 5


class TestProductImport:
    def test_progress_then_result(self, admin_client):
        upload = xlsx_upload(product_rows(
            ["eng-1l", "Acme", 450, 400, "Engine Oil 1L", 1, 10, 20],
            [None, None, None, None, None, None, None, None],
            ["GEAR-5L", "Acme", None, "1,250.50", "Gear Oil 5L", 5, None, 8],
        ))
        response = admin_client.post("/api/products/import", {"file": upload}, format="multipart")

        assert response.status_code == 200
        assert response["Content-Type"] == "application/x-ndjson"
        events = read_events(response)
        assert events == [
            {"type": "progress", "current": 1, "total": 2},
            {"type": "progress", "current": 2, "total": 2},
            {"type": "result", "importedCount": 2, "errorCount": 0, "errors": []},
        ]
        gear = Product.objects.get(code="GEAR-5L")
        assert gear.price == Decimal("1250.50")
        assert gear.mrp == gear.price
        assert Product.objects.get(code="ENG-1L").stock == 20

    def test_duplicates_and_bad_rows_are_reported(self, admin_client, product):
        upload = xlsx_upload(product_rows(
            ["ENG-1L", "Acme", 450, 400, "Engine Oil 1L", 1, 10, 20],
            ["BRK-1", "Acme", None, "abc", "Brake Fluid", 0.5, None, 5],
            ["CLN-1", "Acme", None, 99, "Coolant", 1, None, 7],
        ))
        response = admin_client.post("/api/products/import", {"file": upload}, format="multipart")
        events = read_events(response)

        assert events[0] == {"type": "progress", "current": 3, "total": 3}
        result = events[-1]
        assert result["importedCount"] == 1
        assert result["errorCount"] == 2
        assert result["errors"][0] == "Row 2: Product code ENG-1L already exists"
        assert result["errors"][1].startswith("Row 3: Invalid price")

    def test_missing_column_rejected_before_streaming(self, admin_client, upload_dir):
        upload = xlsx_upload([["Code", "Product Name", "Price"], ["A", "B", 1]])
        response = admin_client.post("/api/products/import", {"file": upload}, format="multipart")

        assert response.status_code == 400
        assert response.data["message"].startswith("Required columns not found")
        assert not Product.objects.exists()
        assert os.listdir(upload_dir) == []

    def test_no_file(self, admin_client):
        response = admin_client.post("/api/products/import", {}, format="multipart")
        assert response.status_code == 400
        assert response.data["message"] == "No file uploaded"

    def test_unreadable_file(self, admin_client, upload_dir):
        from django.core.files.uploadedfile import SimpleUploadedFile

        junk = SimpleUploadedFile("products.xlsx", b"not a workbook")
        response = admin_client.post("/api/products/import", {"file": junk}, format="multipart")
        assert response.status_code == 400
        assert os.listdir(upload_dir) == []

    def test_staff_cannot_import(self, staff_client):
        upload = xlsx_upload(product_rows(["A", "", 1, 1, "B", 1, 0, 1]))
        response = staff_client.post("/api/products/import", {"file": upload}, format="multipart")
        assert response.status_code == 403

    def test_upload_removed_after_import(self, admin_client, upload_dir):
        upload = xlsx_upload(product_rows(["A1", "", 1, 1, "Thing", 1, 0, 1]))
        response = admin_client.post("/api/products/import", {"file": upload}, format="multipart")
        read_events(response)
        assert os.listdir(upload_dir) == []


class TestRetailerImport:
    def test_days_and_staff_names(self, admin_client, staff_user, admin_user):
        upload = xlsx_upload([
            ["Retailer Name", "Address 1", "Address 2", "Day Assigned", "Assigned To"],
            ["Sharma Stores", "12 MG Road", "", "MON", "ravi"],
            ["Gupta Traders", "4 Station Rd", "Near Bus Stand", "Funday", "Nobody Known"],
            ["", "No Name Lane", "", "TUE", ""],
        ])
        response = admin_client.post("/api/retailers/import", {"file": upload}, format="multipart")
        events = read_events(response)
        result = events[-1]

        sharma = Retailer.objects.get(name="Sharma Stores")
        assert sharma.day_assigned == "Monday"
        assert sharma.assigned_to == staff_user
        assert sharma.created_by == admin_user

        gupta = Retailer.objects.get(name="Gupta Traders")
        assert gupta.day_assigned == ""
        assert gupta.assigned_to is None

        assert result["importedCount"] == 2
        assert result["errorCount"] == 2
        assert 'Row 3: Staff member "Nobody Known" not found' in result["errors"]
        assert "Row 4: Missing required fields" in result["errors"]

    def test_existing_name_prefix_is_duplicate(self, admin_client, retailer):
        upload = xlsx_upload([
            ["Retailer Name", "Address 1"],
            ["sharma", "Somewhere"],
        ])
        events = read_events(
            admin_client.post("/api/retailers/import", {"file": upload}, format="multipart")
        )
        assert events[-1]["errorCount"] == 1
        assert Retailer.objects.count() == 1


class TestBillImport:
    def test_balance_and_received(self, admin_client, staff_user):
        upload = xlsx_upload([
            ["Bill No", "Bill Date", "Due Date", "Retailer", "Amount", "Received", "Balance", "Staff", "Collection Day"],
            ["s-1", "2026-01-05", "2026-01-20", "Sharma Stores", 1000, None, None, "Ravi Kumar", "WED"],
            ["S-2", "05/01/2026", None, "Gupta Traders", 800, 300, None, None, None],
            ["S-3", "2026-01-05", None, "Verma Agency", 500, None, 0, None, None],
            ["S-4", "2026-01-05", None, "Bad Balance", 500, None, 900, None, None],
        ])
        events = read_events(
            admin_client.post("/api/bills/import", {"file": upload}, format="multipart")
        )
        result = events[-1]
        assert result["importedCount"] == 3
        assert result["errorCount"] == 1

        s1 = Bill.objects.get(bill_number="S-1")
        assert s1.status == Bill.STATUS_UNPAID
        assert s1.assigned_to == staff_user
        assert s1.collection_day == "Wednesday"

        s2 = Bill.objects.get(bill_number="S-2")
        assert s2.due_amount == Decimal("500.00")
        assert s2.prior_paid == Decimal("300.00")
        assert s2.status == Bill.STATUS_PARTIALLY_PAID
        assert s2.due_date == s2.bill_date

        assert Bill.objects.get(bill_number="S-3").status == Bill.STATUS_PAID


class TestPipelineInternals:
    def test_unexpected_row_failure_is_a_row_error(self, tmp_path, admin_user):
        class ExplodingImporter(ProductImporter):
            def persist(self, data):
                raise RuntimeError("disk on fire")

        path = tmp_path / "p.xlsx"
        path.write_bytes(xlsx_upload(product_rows(["A1", "", 1, 1, "Thing", 1, 0, 1])).read())

        events = list(ExplodingImporter(str(path), user=admin_user).run())
        assert events == [
            {"type": "result", "importedCount": 0, "errorCount": 1, "errors": ["Row 2: disk on fire"]},
        ]
        assert not path.exists()

    def test_failure_outside_a_row_ends_with_error_event(self, tmp_path, admin_user):
        class BrokenImporter(ProductImporter):
            def import_row(self, row_number, row):
                raise RuntimeError("connection lost")

        path = tmp_path / "p.xlsx"
        path.write_bytes(xlsx_upload(product_rows(["A1", "", 1, 1, "Thing", 1, 0, 1])).read())

        events = list(BrokenImporter(str(path), user=admin_user).run())
        assert events[-1]["type"] == "error"
        assert "connection lost" in events[-1]["message"]
        assert not path.exists()

    def test_error_list_is_capped(self, tmp_path, admin_user):
        rows = [["", "", 1, 1, "", 1, 0, 1] for _ in range(15)]
        for row in rows:
            row[0] = "X"
        path = tmp_path / "p.xlsx"
        path.write_bytes(xlsx_upload(product_rows(*rows)).read())

        events = list(ProductImporter(str(path), user=admin_user, max_reported_errors=10).run())
        result = events[-1]
        assert result["errorCount"] == 15
        assert len(result["errors"]) == 10

    def test_closing_the_stream_finishes_the_import(self, upload_dir, admin_user):
        upload = xlsx_upload(product_rows(
            ["A1", "", 1, 1, "One", 1, 0, 1],
            ["A2", "", 1, 1, "Two", 1, 0, 1],
            ["A3", "", 1, 1, "Three", 1, 0, 1],
        ))
        path = save_upload(upload)
        stream = ImportStream(ProductImporter(path, user=admin_user).open())

        next(stream)        # first row only, then the client goes away
        stream.close()

        assert Product.objects.count() == 3
        assert not os.path.exists(path)

    def test_importers_do_not_share_state(self, tmp_path, admin_user):
        first = tmp_path / "a.xlsx"
        second = tmp_path / "b.xlsx"
        first.write_bytes(xlsx_upload(product_rows(["A1", "", 1, 1, "One", 1, 0, 1])).read())
        second.write_bytes(xlsx_upload(product_rows(["B1", "", 1, 1, "Two", 1, 0, 1])).read())

        a = ProductImporter(str(first), user=admin_user)
        b = ProductImporter(str(second), user=admin_user)
        list(a.run())
        list(b.run())
        assert a.result.imported_count == 1
        assert b.result.imported_count == 1
        assert a.result is not b.result

    def test_abstract_importer(self):
        with pytest.raises(NotImplementedError):
            SpreadsheetImporter("unused").parse_row({}, 2)
