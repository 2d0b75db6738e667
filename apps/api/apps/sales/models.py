"""Sales models - originating transactions for sale returns."""
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.core.exceptions import ValidationError
from decimal import Decimal
import uuid


class SaleStatusChoices(models.TextChoices):
    DRAFT = 'draft', _('Draft')
    COMPLETED = 'completed', _('Completed')
    CANCELLED = 'cancelled', _('Cancelled')


class Sale(models.Model):
    """
    Sale transaction.

    Only lines of a completed sale can be returned.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        'core.Organization',
        on_delete=models.CASCADE,
        related_name='sales',
        verbose_name=_('Organization')
    )
    customer = models.ForeignKey(
        'contacts.Contact',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='sales',
        verbose_name=_('Customer')
    )

    sale_number = models.CharField(
        _('Sale Number'),
        max_length=50,
        help_text=_('Human-readable sale number (e.g., INV-2025-001)')
    )
    status = models.CharField(
        _('Status'),
        max_length=20,
        choices=SaleStatusChoices.choices,
        default=SaleStatusChoices.COMPLETED
    )
    total = models.DecimalField(
        _('Total'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )
    currency = models.CharField(
        _('Currency'),
        max_length=3,
        default='USD',
        help_text=_('ISO 4217 currency code')
    )
    sale_date = models.DateField(_('Sale Date'), null=True, blank=True)

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'sales'
        ordering = ['-created_at']
        verbose_name = _('Sale')
        verbose_name_plural = _('Sales')
        constraints = [
            models.UniqueConstraint(
                fields=['organization', 'sale_number'],
                name='unique_sale_number_per_org'
            ),
        ]

    def __str__(self):
        return f"Sale {self.sale_number} - {self.get_status_display()} - {self.currency} {self.total}"


class SaleLine(models.Model):
    """
    Line item in a sale.

    Business Rules:
    - quantity must be > 0
    - 0 <= returned_quantity <= quantity
    - returned_quantity is written only when a sale return is approved
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name='lines',
        verbose_name=_('Sale')
    )
    product = models.ForeignKey(
        'products.Product',
        on_delete=models.PROTECT,
        related_name='sale_lines',
        verbose_name=_('Product')
    )
    product_name = models.CharField(_('Product'), max_length=255)

    quantity = models.PositiveIntegerField(_('Quantity'))
    unit_price = models.DecimalField(_('Unit Price'), max_digits=12, decimal_places=2)
    discount = models.DecimalField(
        _('Discount'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )
    tax_rate = models.DecimalField(
        _('Tax Rate'),
        max_digits=5,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text=_('Percentage, e.g. 10.00 for 10%')
    )
    returned_quantity = models.PositiveIntegerField(
        _('Returned Quantity'),
        default=0,
        help_text=_('Units already taken back by approved returns')
    )

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)

    class Meta:
        db_table = 'sale_lines'
        ordering = ['created_at', 'id']
        verbose_name = _('Sale Line')
        verbose_name_plural = _('Sale Lines')
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='sale_line_quantity_positive'
            ),
            models.CheckConstraint(
                condition=models.Q(returned_quantity__lte=models.F('quantity')),
                name='sale_line_returned_within_quantity'
            ),
        ]

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"

    @property
    def remaining_returnable(self):
        return self.quantity - self.returned_quantity

    def clean(self):
        super().clean()
        if self.returned_quantity > self.quantity:
            raise ValidationError({
                'returned_quantity': 'Returned quantity cannot exceed sold quantity'
            })
