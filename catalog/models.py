"""
Data models for the Catalog app.

Products are reference data for the wallet: purchases snapshot their title
and price, and completed orders look up the delivery artifact here.
"""

import uuid
from decimal import Decimal
from django.db import models
from django.core.validators import MinValueValidator


def new_product_id() -> str:
    """Return a fresh product identifier."""
    return uuid.uuid4().hex


class Product(models.Model):
    """
    A digital product offered in the storefront.
    
    The primary key is a string so that orders can keep a soft reference
    to it after the product is deleted.
    """
    
    id = models.CharField(
        primary_key=True,
        max_length=64,
        default=new_product_id,
        editable=False,
    )
    title = models.CharField(max_length=200)
    price = models.DecimalField(
        max_digits=19,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
    )
    file_url = models.URLField(
        blank=True,
        default='',
        help_text='Stored file delivered after a completed purchase'
    )
    external_link = models.URLField(
        blank=True,
        default='',
        help_text='External link delivered after a completed purchase'
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.title} (৳{self.price})"

    @property
    def delivery(self) -> dict:
        """Delivery artifact exposed to owners of completed orders."""
        return {
            'file_url': self.file_url or None,
            'external_link': self.external_link or None,
        }
