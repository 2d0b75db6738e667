"""
Core models: organization (tenant), document_sequence
"""
import uuid
from django.db import models
from django.utils.translation import gettext_lazy as _


class Organization(models.Model):
    """
    Tenant. Every business document belongs to exactly one organization.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(_('Name'), max_length=255)
    default_currency = models.CharField(
        _('Default Currency'),
        max_length=3,
        default='USD',
        help_text=_('ISO 4217 currency code')
    )
    is_active = models.BooleanField(_('Active'), default=True)
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'organizations'
        ordering = ['name']
        verbose_name = _('Organization')
        verbose_name_plural = _('Organizations')

    def __str__(self):
        return self.name


class DocumentSequence(models.Model):
    """
    Per-organization counter used to number documents (SR-, PR-, CN-, DN-).

    The row is locked with SELECT ... FOR UPDATE while it is incremented,
    so the value is only consumed if the caller's transaction commits.
    """
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='document_sequences',
        verbose_name=_('Organization')
    )
    prefix = models.CharField(_('Prefix'), max_length=10)
    current_value = models.PositiveBigIntegerField(_('Current Value'), default=0)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'document_sequences'
        verbose_name = _('Document Sequence')
        verbose_name_plural = _('Document Sequences')
        constraints = [
            models.UniqueConstraint(
                fields=['organization', 'prefix'],
                name='unique_document_sequence_per_org'
            ),
        ]

    def __str__(self):
        return f"{self.prefix} @ {self.organization_id}: {self.current_value}"
