"""
Finance models: credit notes (sale returns) and debit notes (purchase returns).
"""
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.conf import settings
from django.core.exceptions import ValidationError
from decimal import Decimal
import uuid


class NoteTypeChoices(models.TextChoices):
    SALES = 'sales', _('Credit Note')
    PURCHASE = 'purchase', _('Debit Note')


class NoteStatusChoices(models.TextChoices):
    """
    Note status.

    Transitions:
    - issued -> applied, cancelled
    - draft is accepted for imported documents only; approval issues directly
    """
    DRAFT = 'draft', _('Draft')
    ISSUED = 'issued', _('Issued')
    APPLIED = 'applied', _('Applied')
    CANCELLED = 'cancelled', _('Cancelled')


class FinancialNote(models.Model):
    """
    Credit or debit note issued when a return is approved.

    Business Rules:
    - exactly one note per return (source_return is one-to-one)
    - note_number unique per organization
    - amounts are fixed at issue; only status and its dates change later
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        'core.Organization',
        on_delete=models.CASCADE,
        related_name='financial_notes',
        verbose_name=_('Organization')
    )
    source_return = models.OneToOneField(
        'returns.Return',
        on_delete=models.PROTECT,
        related_name='financial_note',
        verbose_name=_('Return')
    )
    counterparty = models.ForeignKey(
        'contacts.Contact',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='financial_notes',
        verbose_name=_('Counterparty')
    )

    note_number = models.CharField(_('Note Number'), max_length=50)
    note_type = models.CharField(
        _('Note Type'),
        max_length=20,
        choices=NoteTypeChoices.choices
    )
    status = models.CharField(
        _('Status'),
        max_length=20,
        choices=NoteStatusChoices.choices,
        default=NoteStatusChoices.ISSUED
    )

    amount = models.DecimalField(
        _('Amount'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text=_('Subtotal less discounts')
    )
    tax_amount = models.DecimalField(
        _('Tax Amount'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )
    total_amount = models.DecimalField(
        _('Total Amount'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )
    refund_amount = models.DecimalField(
        _('Refund Amount'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text=_('Amount owed to the customer (credit) or deducted from the supplier (debit)')
    )
    currency = models.CharField(_('Currency'), max_length=3, default='USD')

    reason = models.TextField(_('Reason'), blank=True)
    notes = models.TextField(_('Notes'), blank=True)

    issued_date = models.DateField(_('Issued Date'), null=True, blank=True)
    applied_date = models.DateField(_('Applied Date'), null=True, blank=True)
    cancelled_at = models.DateTimeField(_('Cancelled At'), null=True, blank=True)

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Created By')
    )

    # Fields that may change after the note is written
    MUTABLE_FIELDS = {'status', 'applied_date', 'cancelled_at', 'updated_at'}

    class Meta:
        db_table = 'financial_notes'
        ordering = ['-created_at']
        verbose_name = _('Financial Note')
        verbose_name_plural = _('Financial Notes')
        constraints = [
            models.UniqueConstraint(
                fields=['organization', 'note_number'],
                name='unique_note_number_per_org'
            ),
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=0),
                name='note_total_non_negative'
            ),
            models.CheckConstraint(
                condition=models.Q(refund_amount__gte=0),
                name='note_refund_non_negative'
            ),
        ]
        indexes = [
            models.Index(fields=['organization', 'status'], name='idx_note_org_status'),
            models.Index(fields=['note_type', '-created_at'], name='idx_note_type_created'),
        ]

    def __str__(self):
        return f"{self.note_number} ({self.get_note_type_display()}) - {self.currency} {self.total_amount}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            update_fields = kwargs.get('update_fields')
            if update_fields is None or not set(update_fields) <= self.MUTABLE_FIELDS:
                raise ValidationError('Financial note amounts are immutable once issued')
        else:
            self.full_clean()
        super().save(*args, **kwargs)
