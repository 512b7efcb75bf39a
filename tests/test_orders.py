"""
Order booking, stock handling and status changes.
"""
from decimal import Decimal
from io import BytesIO

import pytest
from openpyxl import load_workbook

from inventory.models import Product
from sales.models import Order

pytestmark = pytest.mark.django_db


def book(client, retailer, *lines):
    return client.post("/api/orders", {
        "retailer": str(retailer.pk),
        "items": [
            {"product": str(p.pk), "quantity": q, "other_scheme": str(extra)}
            for p, q, extra in lines
        ],
    }, format="json")


class TestBookOrder:
    def test_line_values_and_stock(self, staff_client, retailer, product, staff_user):
        response = book(staff_client, retailer, (product, 3, Decimal("5")))

        assert response.status_code == 201
        line = response.data["items"][0]
        # 3 * 400 - 3 * (10 + 5)
        assert line["net_price"] == "1155.00"
        assert line["total_sale"] == "1155.00"
        assert line["total_litres"] == "3.000"
        assert line["code"] == "ENG-1L"
        assert response.data["total_order_value"] == "1155.00"
        assert response.data["created_by_name"] == "Ravi Kumar"
        assert response.data["status"] == Order.STATUS_PENDING

        product.refresh_from_db()
        assert product.stock == 47

    def test_snapshot_survives_product_edit(self, staff_client, retailer, product):
        order_id = book(staff_client, retailer, (product, 1, 0)).data["id"]
        Product.objects.filter(pk=product.pk).update(price=Decimal("999"))

        order = Order.objects.get(pk=order_id)
        assert order.items.get().price == Decimal("400")

    def test_insufficient_stock_books_nothing(self, staff_client, retailer, product):
        other = Product.objects.create(
            code="GEAR-5L", name="Gear Oil", price=Decimal("900"),
            weight=Decimal("5"), stock=2,
        )
        response = book(staff_client, retailer, (product, 1, 0), (other, 3, 0))

        assert response.status_code == 400
        assert "Insufficient stock" in response.data["message"]
        assert not Order.objects.exists()
        product.refresh_from_db()
        assert product.stock == 50

    def test_same_product_twice_counts_total_quantity(self, staff_client, retailer, product):
        Product.objects.filter(pk=product.pk).update(stock=4)
        response = book(staff_client, retailer, (product, 3, 0), (product, 2, 0))
        assert response.status_code == 400

    def test_unknown_retailer(self, staff_client, product):
        response = staff_client.post("/api/orders", {
            "retailer": "00000000-0000-0000-0000-000000000000",
            "items": [{"product": str(product.pk), "quantity": 1}],
        }, format="json")
        assert response.status_code == 400
        assert "retailer" in response.data["errors"]

    def test_quantity_must_be_positive(self, staff_client, retailer, product):
        assert book(staff_client, retailer, (product, 0, 0)).status_code == 400


class TestOrderStatus:
    def test_cancel_restores_stock(self, admin_client, staff_client, retailer, product):
        order_id = book(staff_client, retailer, (product, 5, 0)).data["id"]

        response = admin_client.post(f"/api/orders/{order_id}/update_status", {"status": "Cancelled"}, format="json")
        assert response.status_code == 200
        product.refresh_from_db()
        assert product.stock == 50

    def test_final_states(self, admin_client, staff_client, retailer, product):
        order_id = book(staff_client, retailer, (product, 1, 0)).data["id"]
        url = f"/api/orders/{order_id}/update_status"

        assert admin_client.post(url, {"status": "Completed"}, format="json").status_code == 200
        assert admin_client.post(url, {"status": "Cancelled"}, format="json").status_code == 409
        product.refresh_from_db()
        assert product.stock == 49

    def test_staff_cannot_change_status(self, staff_client, retailer, product):
        order_id = book(staff_client, retailer, (product, 1, 0)).data["id"]
        response = staff_client.post(f"/api/orders/{order_id}/update_status", {"status": "Completed"}, format="json")
        assert response.status_code == 403


class TestListing:
    def test_mine_and_admin_list(self, admin_client, staff_client, retailer, product):
        book(staff_client, retailer, (product, 1, 0))
        book(admin_client, retailer, (product, 1, 0))

        assert len(staff_client.get("/api/orders/mine").data) == 1
        assert staff_client.get("/api/orders").status_code == 403
        assert len(admin_client.get("/api/orders").data) == 2
        assert len(admin_client.get("/api/orders?status=Completed").data) == 0

    def test_bad_date_filter(self, admin_client):
        response = admin_client.get("/api/orders?start_date=yesterday")
        assert response.status_code == 400

    def test_export_one_row_per_line(self, admin_client, staff_client, retailer, product):
        book(staff_client, retailer, (product, 2, 0))

        response = admin_client.get("/api/orders/export")
        assert response.status_code == 200
        assert response["Content-Type"].startswith("application/vnd.openxmlformats")

        ws = load_workbook(BytesIO(response.content)).active
        rows = list(ws.iter_rows(values_only=True))
        assert rows[0][0] == "Order ID"
        assert len(rows) == 2
        assert rows[1][1] == "Sharma Stores - 12 MG Road"
        assert rows[1][5] == 2
