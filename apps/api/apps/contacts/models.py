"""
Contact models - customers and suppliers (return counterparties).
"""
import uuid
from django.db import models
from django.utils.translation import gettext_lazy as _


class ContactKindChoices(models.TextChoices):
    CUSTOMER = 'customer', _('Customer')
    SUPPLIER = 'supplier', _('Supplier')


class Contact(models.Model):
    """
    Counterparty of a sale (customer) or purchase order (supplier).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        'core.Organization',
        on_delete=models.CASCADE,
        related_name='contacts',
        verbose_name=_('Organization')
    )
    kind = models.CharField(
        _('Kind'),
        max_length=20,
        choices=ContactKindChoices.choices
    )
    name = models.CharField(_('Name'), max_length=255)
    email = models.EmailField(_('Email'), blank=True)
    phone = models.CharField(_('Phone'), max_length=50, blank=True)
    is_active = models.BooleanField(_('Active'), default=True)

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'contacts'
        ordering = ['name']
        verbose_name = _('Contact')
        verbose_name_plural = _('Contacts')
        indexes = [
            models.Index(fields=['organization', 'kind'], name='idx_contact_org_kind'),
        ]

    def __str__(self):
        return f"{self.name} ({self.get_kind_display()})"

    @property
    def display_name(self):
        return self.name
