from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
import uuid

from inventory.models import Product
from retailers.models import Retailer


class Order(models.Model):
    """Retailer purchase order booked by a staff member or admin"""

    STATUS_PENDING = 'Pending'
    STATUS_COMPLETED = 'Completed'
    STATUS_CANCELLED = 'Cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    # Allowed status changes; Completed and Cancelled are final
    TRANSITIONS = {
        STATUS_PENDING: (STATUS_COMPLETED, STATUS_CANCELLED),
        STATUS_COMPLETED: (),
        STATUS_CANCELLED: (),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    retailer = models.ForeignKey(
        Retailer,
        on_delete=models.PROTECT,
        related_name='orders'
    )
    retailer_name = models.CharField(max_length=200, help_text="Retailer name at order time")

    total_order_value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=0,
        help_text="Sum of line net prices"
    )
    total_litres = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=0,
        help_text="Sum of line litres"
    )

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='orders_created'
    )
    created_by_name = models.CharField(max_length=150)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        verbose_name = 'Order'
        verbose_name_plural = 'Orders'

    @property
    def short_id(self):
        return self.id.hex[-6:].upper()

    def can_move_to(self, new_status):
        return new_status in self.TRANSITIONS.get(self.status, ())

    def __str__(self):
        return f"{self.short_id} - {self.retailer_name} ({self.status})"


class OrderItem(models.Model):
    """
    Order line

    Product code, name, price, weight and scheme are copied from the product
    when the order is booked, so later product edits do not change history.

        net_price    = quantity * price - quantity * (scheme + other_scheme)
        total_litres = quantity * weight
        total_sale   = net_price
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='order_items')

    code = models.CharField(max_length=50)
    name = models.CharField(max_length=200)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    weight = models.DecimalField(max_digits=10, decimal_places=3)
    scheme = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    other_scheme = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    net_price = models.DecimalField(max_digits=12, decimal_places=2)
    total_litres = models.DecimalField(max_digits=12, decimal_places=3)
    total_sale = models.DecimalField(max_digits=12, decimal_places=2)

    remarks = models.CharField(max_length=200, blank=True)

    class Meta:
        db_table = 'order_items'
        ordering = ['code']
        verbose_name = 'Order Item'
        verbose_name_plural = 'Order Items'

    @property
    def total_scheme(self):
        return self.scheme + self.other_scheme

    def calculate(self):
        self.net_price = self.quantity * self.price - self.quantity * (self.scheme + self.other_scheme)
        self.total_litres = self.quantity * self.weight
        self.total_sale = self.net_price

    def save(self, *args, **kwargs):
        self.calculate()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.code} x {self.quantity}"
