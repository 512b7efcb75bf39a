from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
import uuid
from decimal import Decimal

from utils.days import DAY_CHOICES


class Bill(models.Model):
    """
    Bill/Invoice owed by a retailer

    due_amount is always derived from the collections recorded against the
    bill (see billing.reconciliation) and never exceeds amount:

        due_amount = max(0, amount - prior_paid - sum(collections))

    prior_paid holds money received before the bill entered the system
    (bills created with an explicit due amount, or imported with a
    received/balance column).
    """

    STATUS_PAID = 'Paid'
    STATUS_UNPAID = 'Unpaid'
    STATUS_PARTIALLY_PAID = 'Partially Paid'

    STATUS_CHOICES = [
        (STATUS_PAID, 'Paid'),
        (STATUS_UNPAID, 'Unpaid'),
        (STATUS_PARTIALLY_PAID, 'Partially Paid'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    bill_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Bill number (stored uppercase)"
    )
    retailer_name = models.CharField(max_length=200, db_index=True)

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
        help_text="Total bill amount"
    )
    due_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
        help_text="Remaining unpaid amount"
    )
    prior_paid = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=0,
        help_text="Amount received before the bill was entered"
    )

    collection_day = models.CharField(max_length=10, choices=DAY_CHOICES, blank=True)
    bill_date = models.DateField()
    due_date = models.DateField(db_index=True)

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_UNPAID,
        db_index=True
    )

    # Assignment
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_bills'
    )
    assigned_to_name = models.CharField(max_length=150, blank=True)
    assigned_date = models.DateTimeField(null=True, blank=True, db_index=True)

    # Payment
    payment_date = models.DateTimeField(null=True, blank=True)
    payment_method = models.CharField(max_length=20, blank=True)

    history = models.TextField(blank=True, help_text="Append-only activity log")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='bills_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'bills'
        ordering = ['due_date', 'bill_number']
        verbose_name = 'Bill'
        verbose_name_plural = 'Bills'

    def save(self, *args, **kwargs):
        self.bill_number = (self.bill_number or '').strip().upper()
        super().save(*args, **kwargs)

    @property
    def collected_amount(self):
        return self.amount - self.prior_paid - self.due_amount

    def is_overdue(self, today=None):
        today = today or timezone.localdate()
        return self.status != self.STATUS_PAID and today > self.due_date

    def assign_to(self, staff):
        self.assigned_to = staff
        self.assigned_to_name = staff.name if staff else ''
        self.assigned_date = timezone.now() if staff else None
        if staff:
            self.log(f"Assigned to {staff.name}")

    def log(self, message):
        """Append a timestamped line to the history log"""
        stamp = timezone.localtime().strftime('%Y-%m-%d %H:%M')
        line = f"[{stamp}] {message}"
        self.history = f"{self.history}\n{line}" if self.history else line

    def __str__(self):
        return f"{self.bill_number} - {self.retailer_name}"


class Collection(models.Model):
    """
    Payment collected against a bill

    Collections are immutable: they are only ever created (through
    billing.reconciliation.record_collection) and referenced.
    """

    MODE_CASH = 'cash'
    MODE_CHEQUE = 'cheque'
    MODE_BANK_TRANSFER = 'bank_transfer'
    MODE_UPI = 'upi'

    PAYMENT_MODE_CHOICES = [
        (MODE_CASH, 'Cash'),
        (MODE_CHEQUE, 'Cheque'),
        (MODE_BANK_TRANSFER, 'Bank Transfer'),
        (MODE_UPI, 'UPI'),
    ]

    # Detail keys each mode must carry
    REQUIRED_DETAILS = {
        MODE_CASH: (),
        MODE_CHEQUE: ('bankName', 'chequeNumber'),
        MODE_BANK_TRANSFER: ('bankName', 'bankTransactionId'),
        MODE_UPI: ('upiId', 'upiTransactionId'),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    bill = models.ForeignKey(
        Bill,
        on_delete=models.PROTECT,
        related_name='collections'
    )
    amount_collected = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Amount collected in this payment"
    )
    payment_mode = models.CharField(max_length=20, choices=PAYMENT_MODE_CHOICES, default=MODE_CASH)
    payment_details = models.JSONField(null=True, blank=True)

    collected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='collections'
    )
    remarks = models.CharField(max_length=200, blank=True)
    collected_on = models.DateTimeField(default=timezone.now, db_index=True)

    # Snapshot of the bill right after this payment
    due_after = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'collections'
        ordering = ['collected_on', 'created_at']
        verbose_name = 'Collection'
        verbose_name_plural = 'Collections'

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Collections are immutable once recorded")
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.bill.bill_number} - {self.amount_collected} ({self.payment_mode})"
