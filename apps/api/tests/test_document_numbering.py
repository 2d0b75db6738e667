"""
Tests for per-organization document numbering.
"""
import pytest

from apps.core.models import DocumentSequence
from apps.core.services import next_document_number


@pytest.mark.django_db
class TestNextDocumentNumber:

    def test_first_number_is_padded(self, organization):
        assert next_document_number(organization, 'CN') == 'CN-000001'

    def test_numbers_increment(self, organization):
        next_document_number(organization, 'SR')

        assert next_document_number(organization, 'SR') == 'SR-000002'

    def test_prefixes_are_independent(self, organization):
        next_document_number(organization, 'CN')
        next_document_number(organization, 'CN')

        assert next_document_number(organization, 'DN') == 'DN-000001'

    def test_organizations_are_independent(self, organization, other_organization):
        next_document_number(organization, 'CN')

        assert next_document_number(other_organization, 'CN') == 'CN-000001'
        assert DocumentSequence.objects.filter(prefix='CN').count() == 2
