"""
Counterparty lookup scoped to an organization.
"""
from .models import Contact


def get_contact(organization, contact_id):
    """Return the organization's contact or None."""
    return Contact.objects.filter(organization=organization, id=contact_id).first()
