"""
Due-amount and status rules, and the record_collection service.
"""
from decimal import Decimal
from unittest import mock

import pytest
from django.db import DatabaseError
from rest_framework.exceptions import NotFound, ValidationError

from billing import reconciliation
from billing.models import Bill, Collection
from billing.reconciliation import (
    apply_payment,
    compute_due,
    compute_status,
    record_collection,
    settle_bill,
)
from utils.exceptions import ConflictError, TransientError

D = Decimal


class TestPureRules:
    def test_due_is_amount_minus_everything_received(self):
        assert compute_due(D("1000"), D("0"), D("400")) == D("600.00")
        assert compute_due(D("1000"), D("250"), D("400")) == D("350.00")

    def test_due_never_goes_negative(self):
        assert compute_due(D("1000"), D("0"), D("1200")) == D("0.00")
        assert apply_payment(D("50"), D("80")) == D("0.00")

    def test_apply_payment(self):
        assert apply_payment(D("600"), D("600")) == D("0.00")
        assert apply_payment(D("1000"), D("0.40")) == D("999.60")

    @pytest.mark.parametrize("amount,due,expected", [
        ("1000", "1000", Bill.STATUS_UNPAID),
        ("1000", "600", Bill.STATUS_PARTIALLY_PAID),
        ("1000", "0.01", Bill.STATUS_PARTIALLY_PAID),
        ("1000", "0", Bill.STATUS_PAID),
    ])
    def test_status_follows_due(self, amount, due, expected):
        assert compute_status(D(amount), D(due)) == expected


class TestPaymentDetails:
    def test_cash_stores_no_details(self):
        assert reconciliation.validate_payment_details("cash", {"upiId": "x"}) is None

    def test_upi_requires_both_ids(self):
        with pytest.raises(ValidationError):
            reconciliation.validate_payment_details("upi", {"upiId": "shop@upi"})

    def test_cheque_details_kept(self):
        details = reconciliation.validate_payment_details(
            "cheque", {"bankName": " SBI ", "chequeNumber": "004512"}
        )
        assert details == {"bankName": "SBI", "chequeNumber": "004512"}

    def test_unknown_mode(self):
        with pytest.raises(ValidationError):
            reconciliation.validate_payment_details("barter", {})


@pytest.mark.django_db
class TestRecordCollection:
    def test_partial_then_full_payment(self, make_bill, staff_user):
        bill = make_bill("1000", assigned_to=staff_user)

        first, bill = record_collection(bill.pk, D("400"), "cash", staff_user)
        assert bill.due_amount == D("600.00")
        assert bill.status == Bill.STATUS_PARTIALLY_PAID
        assert first.due_after == D("600.00")
        assert bill.payment_date is None

        second, bill = record_collection(
            bill.pk, D("600"), "upi", staff_user,
            payment_details={"upiId": "shop@upi", "upiTransactionId": "T-991"},
        )
        bill.refresh_from_db()
        assert bill.due_amount == D("0.00")
        assert bill.status == Bill.STATUS_PAID
        assert bill.payment_date is not None
        assert bill.payment_method == "upi"
        assert second.payment_details == {"upiId": "shop@upi", "upiTransactionId": "T-991"}
        assert bill.collections.count() == 2

    def test_due_is_recomputed_from_all_collections(self, make_bill, staff_user):
        bill = make_bill("1000")
        record_collection(bill.pk, D("100"), "cash", staff_user)

        # a stale due on the row does not survive the next payment
        Bill.objects.filter(pk=bill.pk).update(due_amount=D("1000"))
        _, bill = record_collection(bill.pk, D("200"), "cash", staff_user)

        assert bill.due_amount == D("700.00")

    def test_prior_paid_counts_towards_settlement(self, make_bill, staff_user):
        bill = make_bill("1000", due="300")
        _, bill = record_collection(bill.pk, D("300"), "cash", staff_user)
        assert bill.status == Bill.STATUS_PAID

    def test_paid_bill_rejects_further_payment(self, make_bill, staff_user):
        bill = make_bill("500")
        record_collection(bill.pk, D("500"), "cash", staff_user)

        with pytest.raises(ConflictError):
            record_collection(bill.pk, D("1"), "cash", staff_user)
        assert Collection.objects.filter(bill=bill).count() == 1

    def test_amount_above_due_is_rejected(self, make_bill, staff_user):
        bill = make_bill("1000", due="600")
        with pytest.raises(ValidationError):
            record_collection(bill.pk, D("600.01"), "cash", staff_user)
        bill.refresh_from_db()
        assert bill.due_amount == D("600")
        assert not bill.collections.exists()

    def test_small_amount_only_when_it_clears_the_bill(self, make_bill, staff_user):
        bill = make_bill("100", due="0.50")
        with pytest.raises(ValidationError):
            record_collection(bill.pk, D("0.25"), "cash", staff_user)

        _, bill = record_collection(bill.pk, D("0.50"), "cash", staff_user)
        assert bill.status == Bill.STATUS_PAID

    def test_unknown_bill(self, staff_user):
        with pytest.raises(NotFound):
            record_collection("00000000-0000-0000-0000-000000000000", D("10"), "cash", staff_user)

    def test_missing_mode_details_write_nothing(self, make_bill, staff_user):
        bill = make_bill("1000")
        with pytest.raises(ValidationError):
            record_collection(bill.pk, D("100"), "bank_transfer", staff_user,
                              payment_details={"bankName": "HDFC"})
        assert not bill.collections.exists()

    def test_database_failure_is_transient_and_rolled_back(self, make_bill, staff_user):
        bill = make_bill("1000")
        with mock.patch.object(Collection.objects, "create", side_effect=DatabaseError("lock timeout")):
            with pytest.raises(TransientError):
                record_collection(bill.pk, D("100"), "cash", staff_user)

        bill.refresh_from_db()
        assert bill.due_amount == D("1000")
        assert bill.status == Bill.STATUS_UNPAID

    def test_bill_row_is_locked_while_recording(self, make_bill, staff_user):
        bill = make_bill("1000")
        with mock.patch.object(
            Bill.objects, "select_for_update", wraps=Bill.objects.select_for_update
        ) as locked:
            record_collection(bill.pk, D("100"), "cash", staff_user)
        locked.assert_called_once_with()

    def test_collections_are_immutable(self, make_bill, staff_user):
        bill = make_bill("1000")
        collection, _ = record_collection(bill.pk, D("100"), "cash", staff_user)
        collection.remarks = "edited"
        with pytest.raises(ValueError):
            collection.save()

    def test_settle_bill_collects_remaining_due_in_cash(self, make_bill, staff_user):
        bill = make_bill("1000", due="250", assigned_to=staff_user)
        collection, bill = settle_bill(bill, staff_user)
        assert collection.amount_collected == D("250.00")
        assert collection.payment_mode == Collection.MODE_CASH
        assert bill.status == Bill.STATUS_PAID
        assert "Collected 250.00" in bill.history
