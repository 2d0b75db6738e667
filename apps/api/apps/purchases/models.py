"""Purchase models - originating transactions for purchase returns."""
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.core.exceptions import ValidationError
from decimal import Decimal
import uuid


class PurchaseOrderStatusChoices(models.TextChoices):
    DRAFT = 'draft', _('Draft')
    ORDERED = 'ordered', _('Ordered')
    RECEIVED = 'received', _('Received')
    CANCELLED = 'cancelled', _('Cancelled')


class PurchaseOrder(models.Model):
    """
    Purchase order from a supplier.

    Only lines of a received order can be returned to the supplier.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        'core.Organization',
        on_delete=models.CASCADE,
        related_name='purchase_orders',
        verbose_name=_('Organization')
    )
    supplier = models.ForeignKey(
        'contacts.Contact',
        on_delete=models.PROTECT,
        related_name='purchase_orders',
        verbose_name=_('Supplier')
    )

    po_number = models.CharField(_('PO Number'), max_length=50)
    status = models.CharField(
        _('Status'),
        max_length=20,
        choices=PurchaseOrderStatusChoices.choices,
        default=PurchaseOrderStatusChoices.RECEIVED
    )
    total = models.DecimalField(
        _('Total'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )
    currency = models.CharField(_('Currency'), max_length=3, default='USD')
    order_date = models.DateField(_('Order Date'), null=True, blank=True)

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'purchase_orders'
        ordering = ['-created_at']
        verbose_name = _('Purchase Order')
        verbose_name_plural = _('Purchase Orders')
        constraints = [
            models.UniqueConstraint(
                fields=['organization', 'po_number'],
                name='unique_po_number_per_org'
            ),
        ]

    def __str__(self):
        return f"PO {self.po_number} - {self.get_status_display()}"


class PurchaseOrderLine(models.Model):
    """
    Line item in a purchase order.

    Business Rules:
    - quantity must be > 0
    - 0 <= returned_quantity <= quantity
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.CASCADE,
        related_name='lines',
        verbose_name=_('Purchase Order')
    )
    product = models.ForeignKey(
        'products.Product',
        on_delete=models.PROTECT,
        related_name='purchase_order_lines',
        verbose_name=_('Product')
    )
    quantity = models.PositiveIntegerField(_('Quantity'))
    unit_cost = models.DecimalField(_('Unit Cost'), max_digits=12, decimal_places=2)
    tax_rate = models.DecimalField(
        _('Tax Rate'),
        max_digits=5,
        decimal_places=2,
        default=Decimal('0.00')
    )
    returned_quantity = models.PositiveIntegerField(
        _('Returned Quantity'),
        default=0,
        help_text=_('Units already sent back by approved purchase returns')
    )

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)

    class Meta:
        db_table = 'purchase_order_lines'
        ordering = ['created_at', 'id']
        verbose_name = _('Purchase Order Line')
        verbose_name_plural = _('Purchase Order Lines')
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='po_line_quantity_positive'
            ),
            models.CheckConstraint(
                condition=models.Q(returned_quantity__lte=models.F('quantity')),
                name='po_line_returned_within_quantity'
            ),
        ]

    def __str__(self):
        return f"{self.product_id} x {self.quantity}"

    @property
    def remaining_returnable(self):
        return self.quantity - self.returned_quantity

    def clean(self):
        super().clean()
        if self.returned_quantity > self.quantity:
            raise ValidationError({
                'returned_quantity': 'Returned quantity cannot exceed ordered quantity'
            })
