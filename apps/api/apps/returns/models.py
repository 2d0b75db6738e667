"""
Returns models: sale returns and purchase returns with their lines.

One Return model serves both directions; ``kind`` selects the sign of
the stock movement and credit-vs-debit semantics.
"""
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.conf import settings
from django.core.exceptions import ValidationError
from decimal import Decimal
import uuid


class ReturnKindChoices(models.TextChoices):
    SALE = 'sale', _('Sale Return')
    PURCHASE = 'purchase', _('Purchase Return')


class ReturnStatusChoices(models.TextChoices):
    """
    Return status.

    Transitions:
    - pending -> approved (terminal)
    - pending -> rejected (terminal)
    """
    PENDING = 'pending', _('Pending')
    APPROVED = 'approved', _('Approved')
    REJECTED = 'rejected', _('Rejected')


class RefundTypeChoices(models.TextChoices):
    """Refund policy, sale returns only."""
    FULL = 'full', _('Full Refund')
    PARTIAL = 'partial', _('Partial Refund')
    NONE = 'none', _('No Refund')


class ItemConditionChoices(models.TextChoices):
    GOOD = 'good', _('Good')
    DAMAGED = 'damaged', _('Damaged')
    DEFECTIVE = 'defective', _('Defective')
    EXCESS = 'excess', _('Excess')
    WRONG_ITEM = 'wrong_item', _('Wrong Item')


# Plain string keys: enum members do not hash like their values
CONDITIONS_BY_KIND = {
    ReturnKindChoices.SALE.value: {
        ItemConditionChoices.GOOD.value,
        ItemConditionChoices.DAMAGED.value,
        ItemConditionChoices.DEFECTIVE.value,
    },
    ReturnKindChoices.PURCHASE.value: {
        ItemConditionChoices.DEFECTIVE.value,
        ItemConditionChoices.DAMAGED.value,
        ItemConditionChoices.EXCESS.value,
        ItemConditionChoices.WRONG_ITEM.value,
    },
}


class Return(models.Model):
    """
    A request to reverse part of a prior sale or purchase order.

    Business Rules:
    - sale returns reference a sale, purchase returns a purchase order
    - refund_type is set for sale returns and empty for purchase returns
    - at most one transition out of pending, ever
    - cannot be deleted once decided
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        'core.Organization',
        on_delete=models.CASCADE,
        related_name='returns',
        verbose_name=_('Organization')
    )
    return_number = models.CharField(
        _('Return Number'),
        max_length=50,
        help_text=_('Human-readable number (SR-000001 / PR-000001)')
    )
    kind = models.CharField(
        _('Kind'),
        max_length=20,
        choices=ReturnKindChoices.choices
    )

    # Originating transaction
    sale = models.ForeignKey(
        'sales.Sale',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='returns',
        verbose_name=_('Sale')
    )
    purchase_order = models.ForeignKey(
        'purchases.PurchaseOrder',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='returns',
        verbose_name=_('Purchase Order')
    )
    counterparty = models.ForeignKey(
        'contacts.Contact',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='returns',
        verbose_name=_('Counterparty'),
        help_text=_('Customer for sale returns, supplier for purchase returns')
    )

    status = models.CharField(
        _('Status'),
        max_length=20,
        choices=ReturnStatusChoices.choices,
        default=ReturnStatusChoices.PENDING
    )
    refund_type = models.CharField(
        _('Refund Type'),
        max_length=20,
        choices=RefundTypeChoices.choices,
        null=True,
        blank=True
    )

    # Financial totals (rounded once at total level)
    amount = models.DecimalField(
        _('Amount'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text=_('Sum of quantity x unit price')
    )
    discount = models.DecimalField(_('Discount'), max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax = models.DecimalField(_('Tax'), max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(_('Total'), max_digits=12, decimal_places=2, default=Decimal('0.00'))
    refund_amount = models.DecimalField(
        _('Refund Amount'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text=_('Refund owed (sale) or debit against the supplier (purchase)')
    )
    currency = models.CharField(_('Currency'), max_length=3, default='USD')

    # Audit
    return_date = models.DateField(_('Return Date'), null=True, blank=True)
    reason = models.TextField(_('Reason'), blank=True)
    refund_reason = models.TextField(_('Refund Reason'), blank=True)
    notes = models.TextField(_('Notes'), blank=True)
    rejection_reason = models.TextField(_('Rejection Reason'), blank=True)
    idempotency_key = models.CharField(
        _('Idempotency Key'),
        max_length=100,
        null=True,
        blank=True,
        help_text=_('Client key that makes create retries return the same return')
    )

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)
    decided_at = models.DateTimeField(_('Decided At'), null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Created By')
    )
    decided_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Decided By')
    )

    class Meta:
        db_table = 'returns'
        ordering = ['-created_at']
        verbose_name = _('Return')
        verbose_name_plural = _('Returns')
        constraints = [
            models.UniqueConstraint(
                fields=['organization', 'return_number'],
                name='unique_return_number_per_org'
            ),
            models.UniqueConstraint(
                fields=['organization', 'idempotency_key'],
                condition=models.Q(idempotency_key__isnull=False),
                name='unique_return_idempotency_key_per_org'
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(kind='sale', sale__isnull=False, purchase_order__isnull=True)
                    | models.Q(kind='purchase', purchase_order__isnull=False, sale__isnull=True)
                ),
                name='return_origin_matches_kind'
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(kind='sale', refund_type__isnull=False)
                    | models.Q(kind='purchase', refund_type__isnull=True)
                ),
                name='return_refund_type_matches_kind'
            ),
            models.CheckConstraint(
                condition=models.Q(total__gte=0) & models.Q(refund_amount__gte=0),
                name='return_amounts_non_negative'
            ),
        ]
        indexes = [
            models.Index(fields=['organization', 'status', '-created_at'], name='idx_return_org_status'),
            models.Index(fields=['kind', '-created_at'], name='idx_return_kind_created'),
        ]

    def __str__(self):
        return f"{self.return_number} ({self.get_kind_display()}) - {self.get_status_display()}"

    def save(self, *args, **kwargs):
        """Enforce full_clean() so admin edits cannot bypass the rules."""
        if not kwargs.pop('skip_validation', False):
            self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        # INVARIANT: never deleted after a decision
        if self.status != ReturnStatusChoices.PENDING:
            raise ValidationError(f'Cannot delete a return that is {self.status}')
        return super().delete(*args, **kwargs)

    def clean(self):
        super().clean()

        if self.kind == ReturnKindChoices.SALE:
            if not self.sale_id or self.purchase_order_id:
                raise ValidationError({'sale': 'Sale returns must reference a sale only'})
            if not self.refund_type:
                raise ValidationError({'refund_type': 'Sale returns require a refund type'})
        elif self.kind == ReturnKindChoices.PURCHASE:
            if not self.purchase_order_id or self.sale_id:
                raise ValidationError({'purchase_order': 'Purchase returns must reference a purchase order only'})
            if self.refund_type:
                raise ValidationError({'refund_type': 'Purchase returns have no refund type'})

    @property
    def is_pending(self):
        return self.status == ReturnStatusChoices.PENDING

    @property
    def originating_id(self):
        return self.sale_id if self.kind == ReturnKindChoices.SALE else self.purchase_order_id


class ReturnLine(models.Model):
    """
    Line item of a return.

    Business Rules:
    - quantity > 0
    - condition must be valid for the return kind
    - tax_amount and line_total are stored unrounded (4 dp) for audit
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    return_obj = models.ForeignKey(
        Return,
        on_delete=models.CASCADE,
        related_name='lines',
        db_column='return_id',
        verbose_name=_('Return')
    )
    product = models.ForeignKey(
        'products.Product',
        on_delete=models.PROTECT,
        related_name='return_lines',
        verbose_name=_('Product')
    )
    # Snapshot at creation
    product_name = models.CharField(_('Product Name'), max_length=255)
    product_sku = models.CharField(_('Product SKU'), max_length=100)

    quantity = models.PositiveIntegerField(_('Quantity'))
    unit_price = models.DecimalField(_('Unit Price'), max_digits=12, decimal_places=2)
    discount = models.DecimalField(_('Discount'), max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax_rate = models.DecimalField(
        _('Tax Rate'),
        max_digits=5,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text=_('Percentage, e.g. 10.00 for 10%')
    )
    tax_amount = models.DecimalField(_('Tax Amount'), max_digits=14, decimal_places=4, default=Decimal('0'))
    line_total = models.DecimalField(_('Line Total'), max_digits=14, decimal_places=4, default=Decimal('0'))
    condition = models.CharField(
        _('Condition'),
        max_length=20,
        choices=ItemConditionChoices.choices
    )
    position = models.PositiveSmallIntegerField(_('Position'), default=0)

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)

    class Meta:
        db_table = 'return_lines'
        ordering = ['position', 'created_at']
        verbose_name = _('Return Line')
        verbose_name_plural = _('Return Lines')
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='return_line_quantity_positive'
            ),
            models.CheckConstraint(
                condition=models.Q(unit_price__gte=0) & models.Q(discount__gte=0),
                name='return_line_amounts_non_negative'
            ),
        ]

    def __str__(self):
        return f"{self.product_name} x {self.quantity} ({self.condition})"
