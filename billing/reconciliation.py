"""
Collection reconciliation.

A bill's due amount is recomputed from the sum of all its collections every
time a payment is recorded, inside one transaction that holds a row lock on
the bill:

    due    = max(0, amount - prior_paid - sum(collections))
    status = Paid            if due <= 0
             Partially Paid  if 0 < due < amount
             Unpaid          if due == amount

Two payments against the same bill serialize on the lock, so the second
always sees the first one's collection in the sum.
"""
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import Sum
from django.utils import timezone
from loguru import logger
from rest_framework.exceptions import NotFound, ValidationError

from utils.exceptions import ConflictError, TransientError

from .models import Bill, Collection

ZERO = Decimal('0.00')
MIN_COLLECTION = Decimal('1')
CENT = Decimal('0.01')


def _money(value):
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_due(amount, prior_paid, collected_total):
    """Remaining due from the bill total and everything received so far"""
    return max(ZERO, _money(amount) - _money(prior_paid) - _money(collected_total))


def apply_payment(due, amount):
    """Due after paying `amount` against `due`, floored at zero"""
    return max(ZERO, _money(due) - _money(amount))


def compute_status(amount, due):
    if due <= 0:
        return Bill.STATUS_PAID
    if due < amount:
        return Bill.STATUS_PARTIALLY_PAID
    return Bill.STATUS_UNPAID


def max_collection_amount():
    return Decimal(str(getattr(settings, 'MAX_COLLECTION_AMOUNT', '1000000')))


def validate_payment_details(payment_mode, payment_details):
    """
    Check the mode-specific detail fields and return the details to store.

    Cash payments store no details.
    """
    required = Collection.REQUIRED_DETAILS.get(payment_mode)
    if required is None:
        raise ValidationError({'paymentMode': ['Invalid payment mode']})
    if not required:
        return None

    details = payment_details or {}
    missing = [key for key in required if not str(details.get(key) or '').strip()]
    if missing:
        raise ValidationError({
            f'paymentDetails.{key}': ['This field is required for this payment mode']
            for key in missing
        })
    return {key: str(value).strip() for key, value in details.items() if value not in (None, '')}


def check_amount_against_due(amount, due):
    if amount <= 0:
        raise ValidationError({'amountCollected': ['Amount must be greater than 0']})
    if amount > due:
        raise ValidationError({
            'amountCollected': [f'Amount cannot exceed due amount of {_money(due)}']
        })
    if amount < MIN_COLLECTION and amount != due:
        raise ValidationError({
            'amountCollected': ['Amount collected must be at least 1']
        })


def record_collection(bill_id, amount_collected, payment_mode, collected_by,
                      payment_details=None, remarks=''):
    """
    Record a payment against a bill and reconcile the bill.

    Returns (collection, bill). Raises NotFound for an unknown bill,
    ConflictError for a bill that is already paid, ValidationError for an
    amount above the current due and TransientError when the transaction
    cannot be committed (nothing is written in that case).
    """
    amount = _money(amount_collected)
    details = validate_payment_details(payment_mode, payment_details)

    try:
        with transaction.atomic():
            try:
                bill = Bill.objects.select_for_update().get(pk=bill_id)
            except Bill.DoesNotExist:
                raise NotFound('Bill not found')

            if bill.status == Bill.STATUS_PAID:
                raise ConflictError('Bill is already fully paid')

            check_amount_against_due(amount, bill.due_amount)

            collected_before = bill.collections.aggregate(
                total=Sum('amount_collected')
            )['total'] or ZERO
            new_due = compute_due(bill.amount, bill.prior_paid, collected_before + amount)

            collection = Collection.objects.create(
                bill=bill,
                amount_collected=amount,
                payment_mode=payment_mode,
                payment_details=details,
                collected_by=collected_by,
                remarks=remarks or '',
                collected_on=timezone.now(),
                due_after=new_due,
            )

            bill.due_amount = new_due
            bill.status = compute_status(bill.amount, new_due)
            bill.payment_method = payment_mode
            if bill.status == Bill.STATUS_PAID and bill.payment_date is None:
                bill.payment_date = collection.collected_on
            bill.log(
                f"Collected {amount} via {payment_mode} by {collected_by.name}; "
                f"due {new_due} ({bill.status})"
            )
            bill.save(update_fields=[
                'due_amount', 'status', 'payment_method', 'payment_date',
                'history', 'updated_at',
            ])
    except DatabaseError as exc:
        logger.error(f"Collection on bill {bill_id} rolled back: {exc}")
        raise TransientError('Could not record the collection, please retry')

    logger.info(
        f"Collection {collection.id}: {amount} on {bill.bill_number} by {collected_by.email}, "
        f"due now {bill.due_amount} ({bill.status})"
    )
    return collection, bill


def settle_bill(bill, collected_by, remarks=''):
    """Collect the whole remaining due in cash"""
    return record_collection(
        bill.pk,
        bill.due_amount,
        Collection.MODE_CASH,
        collected_by,
        remarks=remarks or 'Marked as paid',
    )


def reconcile_bill(bill):
    """
    Recompute due amount and status of a bill from its collections.

    Used after editing a bill's amount; returns the saved bill.
    """
    with transaction.atomic():
        bill = Bill.objects.select_for_update().get(pk=bill.pk)
        collected = bill.collections.aggregate(total=Sum('amount_collected'))['total'] or ZERO
        bill.due_amount = compute_due(bill.amount, bill.prior_paid, collected)
        bill.status = compute_status(bill.amount, bill.due_amount)
        if bill.status == Bill.STATUS_PAID and bill.payment_date is None:
            bill.payment_date = timezone.now()
        bill.save(update_fields=['due_amount', 'status', 'payment_date', 'updated_at'])
    return bill
