"""
Inventory ledger models.

- Append-only movement rows, one per return line on approval
- Requested delta and applied delta (after the zero floor) both recorded
- Materialized counters on Product are kept consistent in the same transaction
"""
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.conf import settings
from django.core.exceptions import ValidationError
import uuid


class MovementTypeChoices(models.TextChoices):
    """
    Ledger movement types.

    SALE_RETURN: goods back into sellable stock (+)
    SALE_RETURN_DEFECTIVE: goods back into the defective counter (+)
    PURCHASE_RETURN: goods sent back to the supplier (-)
    """
    SALE_RETURN = 'sale_return', _('Sale Return')
    SALE_RETURN_DEFECTIVE = 'sale_return_defective', _('Sale Return (Defective)')
    PURCHASE_RETURN = 'purchase_return', _('Purchase Return')


class InventoryMovement(models.Model):
    """
    Inventory ledger entry.

    Business Rules:
    - quantity cannot be 0
    - rows are immutable once written
    - applied_quantity differs from quantity only when the zero floor clamped it
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        'core.Organization',
        on_delete=models.CASCADE,
        related_name='inventory_movements',
        verbose_name=_('Organization')
    )
    product = models.ForeignKey(
        'products.Product',
        on_delete=models.PROTECT,
        related_name='inventory_movements',
        verbose_name=_('Product')
    )
    movement_type = models.CharField(
        _('Movement Type'),
        max_length=30,
        choices=MovementTypeChoices.choices
    )
    quantity = models.IntegerField(
        _('Quantity'),
        help_text=_('Requested signed delta')
    )
    applied_quantity = models.IntegerField(
        _('Applied Quantity'),
        help_text=_('Delta actually applied to the counter after the zero floor')
    )
    balance_after = models.IntegerField(
        _('Balance After'),
        help_text=_('Counter value right after this movement')
    )

    reference_return = models.ForeignKey(
        'returns.Return',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Return')
    )
    reference_return_line = models.OneToOneField(
        'returns.ReturnLine',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movement',
        verbose_name=_('Return Line')
    )
    note = models.TextField(_('Note'), blank=True)

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        verbose_name=_('Created By')
    )

    class Meta:
        db_table = 'inventory_movements'
        ordering = ['-created_at']
        verbose_name = _('Inventory Movement')
        verbose_name_plural = _('Inventory Movements')
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(quantity=0),
                name='inventory_movement_quantity_non_zero'
            ),
            models.CheckConstraint(
                condition=models.Q(balance_after__gte=0),
                name='inventory_movement_balance_non_negative'
            ),
        ]
        indexes = [
            models.Index(fields=['product', '-created_at'], name='idx_movement_product'),
            models.Index(fields=['organization', '-created_at'], name='idx_movement_org'),
            models.Index(fields=['movement_type', '-created_at'], name='idx_movement_type'),
        ]

    def __str__(self):
        return f"{self.get_movement_type_display()} - {self.product_id} ({self.quantity})"

    def clean(self):
        super().clean()

        # INVARIANT: quantity != 0
        if self.quantity == 0:
            raise ValidationError({'quantity': 'Quantity cannot be zero'})

        # INVARIANT: sign follows the movement type
        if self.movement_type == MovementTypeChoices.PURCHASE_RETURN and self.quantity > 0:
            raise ValidationError({
                'quantity': 'Purchase return movements must have negative quantity'
            })
        if self.movement_type != MovementTypeChoices.PURCHASE_RETURN and self.quantity < 0:
            raise ValidationError({
                'quantity': f'{self.get_movement_type_display()} must have positive quantity'
            })

    def save(self, *args, **kwargs):
        # INVARIANT: append-only
        if not self._state.adding:
            raise ValidationError('Inventory movements are immutable')
        self.full_clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError('Inventory movements are immutable')

    @property
    def was_clamped(self):
        return self.applied_quantity != self.quantity
