from django.conf import settings
from django.db import models
import uuid

from utils.days import DAY_CHOICES


class Retailer(models.Model):
    """Retailer (customer outlet) visited by field staff on its assigned day"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=200, db_index=True)
    address1 = models.CharField(max_length=255)
    address2 = models.CharField(max_length=255, blank=True)

    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_retailers',
        help_text="Staff member visiting this retailer"
    )
    day_assigned = models.CharField(max_length=10, choices=DAY_CHOICES, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='retailers_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'retailers'
        ordering = ['name']
        verbose_name = 'Retailer'
        verbose_name_plural = 'Retailers'

    def __str__(self):
        return self.name
