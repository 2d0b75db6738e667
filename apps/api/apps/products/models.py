"""
Product models - product catalog with materialized stock counters.
"""
import uuid
from django.db import models
from django.utils.translation import gettext_lazy as _


class Product(models.Model):
    """
    Product model.

    ``stock_quantity`` (sellable) and ``defective_quantity`` (returned
    goods set aside) are caches of the inventory ledger. Return-driven
    changes go through ``apps.stock.services.record_movement`` only.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        'core.Organization',
        on_delete=models.CASCADE,
        related_name='products',
        verbose_name=_('Organization')
    )

    # Basic info
    sku = models.CharField(_('SKU'), max_length=100)
    name = models.CharField(_('Name'), max_length=255)
    description = models.TextField(_('Description'), blank=True)
    category = models.CharField(_('Category'), max_length=100, blank=True)

    # Pricing
    price = models.DecimalField(_('Price'), max_digits=12, decimal_places=2)
    cost = models.DecimalField(_('Cost'), max_digits=12, decimal_places=2, default=0)

    # Inventory
    stock_quantity = models.IntegerField(_('Stock Quantity'), default=0)
    defective_quantity = models.IntegerField(_('Defective Quantity'), default=0)
    low_stock_threshold = models.IntegerField(_('Low Stock Threshold'), default=10)

    # Status
    is_active = models.BooleanField(_('Active'), default=True)

    # Metadata
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'products'
        ordering = ['name']
        indexes = [
            models.Index(fields=['organization', 'sku'], name='idx_product_org_sku'),
            models.Index(fields=['name'], name='idx_product_name'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['organization', 'sku'],
                name='unique_product_sku_per_org'
            ),
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name='product_stock_non_negative'
            ),
            models.CheckConstraint(
                condition=models.Q(defective_quantity__gte=0),
                name='product_defective_non_negative'
            ),
        ]
        verbose_name = _('Product')
        verbose_name_plural = _('Products')

    def __str__(self):
        return f"{self.name} ({self.sku})"

    @property
    def is_low_stock(self):
        """Check if stock is below threshold."""
        return self.stock_quantity <= self.low_stock_threshold
