from django.core.validators import MinValueValidator
from django.db import models
import uuid


class Product(models.Model):
    """
    Product master

    `code` is unique and always stored uppercase.
    `scheme` is the per-unit discount given on every sale of the product.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=50, unique=True, help_text="Product code (uppercase)")
    name = models.CharField(max_length=200)
    company = models.CharField(max_length=200, blank=True)

    mrp = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0)],
    )
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(0)],
        help_text="Selling price per unit"
    )
    weight = models.DecimalField(
        max_digits=10,
        decimal_places=3,
        validators=[MinValueValidator(0)],
        help_text="Litres / kg per unit"
    )
    scheme = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        help_text="Per-unit scheme discount"
    )
    stock = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'products'
        ordering = ['name']
        verbose_name = 'Product'
        verbose_name_plural = 'Products'

    def save(self, *args, **kwargs):
        self.code = (self.code or '').strip().upper()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.code} - {self.name}"
