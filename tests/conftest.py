from datetime import date
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from accounts.models import User
from billing.models import Bill
from inventory.models import Product
from retailers.models import Retailer


@pytest.fixture(autouse=True)
def upload_dir(settings, tmp_path):
    path = tmp_path / "uploads"
    settings.IMPORT_UPLOAD_DIR = str(path)
    return path


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="admin@example.com", password="secret123", name="Asha Admin", role=User.ROLE_ADMIN
    )


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(
        email="ravi@example.com", password="secret123", name="Ravi Kumar", role=User.ROLE_STAFF
    )


@pytest.fixture
def other_staff(db):
    return User.objects.create_user(
        email="meena@example.com", password="secret123", name="Meena Das", role=User.ROLE_STAFF
    )


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture
def make_bill(db):
    counter = {"n": 0}

    def _make(amount="1000", due=None, assigned_to=None, **kwargs):
        counter["n"] += 1
        amount = Decimal(amount)
        due = amount if due is None else Decimal(due)
        bill = Bill(
            bill_number=kwargs.pop("bill_number", f"B-{counter['n']:03d}"),
            retailer_name=kwargs.pop("retailer_name", "Sharma Stores"),
            amount=amount,
            due_amount=due,
            prior_paid=amount - due,
            bill_date=kwargs.pop("bill_date", date(2026, 1, 5)),
            due_date=kwargs.pop("due_date", date(2026, 1, 20)),
            **kwargs,
        )
        if due <= 0:
            bill.status = Bill.STATUS_PAID
        elif due < amount:
            bill.status = Bill.STATUS_PARTIALLY_PAID
        if assigned_to is not None:
            bill.assign_to(assigned_to)
        bill.save()
        return bill

    return _make


@pytest.fixture
def product(db):
    return Product.objects.create(
        code="ENG-1L", name="Engine Oil 1L", company="Acme Lubes",
        mrp=Decimal("450"), price=Decimal("400"), weight=Decimal("1.000"),
        scheme=Decimal("10"), stock=50,
    )


@pytest.fixture
def retailer(db, admin_user):
    return Retailer.objects.create(
        name="Sharma Stores", address1="12 MG Road", created_by=admin_user
    )
