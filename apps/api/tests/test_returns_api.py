"""
Tests for the returns, notes and ledger REST endpoints.

Covers:
- create / list / retrieve / delete / approve / reject
- error mapping: 400 validation, 404 not found, 409 already decided
- role permissions and tenant isolation
"""
import pytest
from decimal import Decimal
from rest_framework import status

from apps.finance.models import FinancialNote
from apps.returns.models import Return, ReturnStatusChoices
from apps.returns.services import approve_return, reject_return
from apps.stock.models import InventoryMovement

RETURNS_URL = '/api/returns/returns/'
NOTES_URL = '/api/finance/notes/'
MOVEMENTS_URL = '/api/stock/movements/'


def _sale_payload(completed_sale, product, **overrides):
    payload = {
        'kind': 'sale',
        'sale': str(completed_sale.pk),
        'refund_type': 'full',
        'reason': 'Customer changed their mind',
        'lines': [
            {'product': str(product.pk), 'quantity': 2, 'condition': 'good'},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.mark.django_db
class TestCreateReturnEndpoint:

    def test_create_sale_return(self, sales_client, completed_sale, product):
        response = sales_client.post(RETURNS_URL, _sale_payload(completed_sale, product), format='json')

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data['status'] == 'pending'
        assert data['return_number'] == 'SR-000001'
        assert Decimal(data['total']) == Decimal('22.00')
        assert len(data['lines']) == 1
        assert data['financial_note'] is None

    def test_create_purchase_return(self, manager_client, received_purchase_order, product):
        payload = {
            'kind': 'purchase',
            'purchase_order': str(received_purchase_order.pk),
            'lines': [{'product': str(product.pk), 'quantity': 5, 'condition': 'defective'}],
        }

        response = manager_client.post(RETURNS_URL, payload, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()['return_number'] == 'PR-000001'
        assert response.json()['refund_type'] is None

    def test_over_return_is_400(self, sales_client, completed_sale, product):
        payload = _sale_payload(completed_sale, product, lines=[
            {'product': str(product.pk), 'quantity': 6, 'condition': 'good'},
        ])

        response = sales_client.post(RETURNS_URL, payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['error_type'] == 'over_return'
        assert Return.objects.count() == 0

    def test_sale_return_requires_sale(self, sales_client, product):
        payload = {
            'kind': 'sale',
            'lines': [{'product': str(product.pk), 'quantity': 1, 'condition': 'good'}],
        }

        response = sales_client.post(RETURNS_URL, payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'sale' in response.json()

    def test_purchase_return_rejects_refund_type(self, manager_client, received_purchase_order, product):
        payload = {
            'kind': 'purchase',
            'purchase_order': str(received_purchase_order.pk),
            'refund_type': 'full',
            'lines': [{'product': str(product.pk), 'quantity': 1, 'condition': 'defective'}],
        }

        response = manager_client.post(RETURNS_URL, payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_zero_quantity_is_400(self, sales_client, completed_sale, product):
        payload = _sale_payload(completed_sale, product, lines=[
            {'product': str(product.pk), 'quantity': 0, 'condition': 'good'},
        ])

        response = sales_client.post(RETURNS_URL, payload, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_empty_lines_is_400(self, sales_client, completed_sale, product):
        response = sales_client.post(
            RETURNS_URL, _sale_payload(completed_sale, product, lines=[]), format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_sale_of_another_tenant_is_404(self, other_org_client, completed_sale, product):
        response = other_org_client.post(RETURNS_URL, _sale_payload(completed_sale, product), format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['error_type'] == 'not_found'

    def test_idempotency_key_returns_same_return(self, sales_client, completed_sale, product):
        payload = _sale_payload(completed_sale, product, idempotency_key='checkout-123')

        first = sales_client.post(RETURNS_URL, payload, format='json')
        second = sales_client.post(RETURNS_URL, payload, format='json')

        assert first.json()['id'] == second.json()['id']
        assert Return.objects.count() == 1

    def test_created_by_is_request_user(self, sales_client, sales_user, completed_sale, product):
        response = sales_client.post(RETURNS_URL, _sale_payload(completed_sale, product), format='json')

        assert Return.objects.get(pk=response.json()['id']).created_by == sales_user


@pytest.mark.django_db
class TestListRetrieveEndpoints:

    def test_list_is_paginated_and_filtered(self, manager_client, sale_return_factory, purchase_return_factory):
        sale_return_factory()
        purchase_return_factory()

        response = manager_client.get(RETURNS_URL)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['count'] == 2

        response = manager_client.get(RETURNS_URL, {'kind': 'purchase'})
        results = response.json()['results']
        assert len(results) == 1
        assert results[0]['kind'] == 'purchase'

    def test_status_filter(self, manager_client, sale_return_factory, organization):
        pending = sale_return_factory()
        rejected = sale_return_factory()
        reject_return(rejected.pk, organization=organization)

        response = manager_client.get(RETURNS_URL, {'status': 'pending'})

        ids = [item['id'] for item in response.json()['results']]
        assert ids == [str(pending.pk)]

    def test_other_tenant_sees_nothing(self, other_org_client, sale_return_factory):
        ret = sale_return_factory()

        assert other_org_client.get(RETURNS_URL).json()['count'] == 0
        assert other_org_client.get(f'{RETURNS_URL}{ret.pk}/').status_code == status.HTTP_404_NOT_FOUND

    def test_retrieve_includes_lines(self, sales_client, sale_return_factory):
        ret = sale_return_factory()

        response = sales_client.get(f'{RETURNS_URL}{ret.pk}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['lines'][0]['product_sku'] == 'WID-001'


@pytest.mark.django_db
class TestApproveEndpoint:

    def test_approve_returns_movements_and_note(self, accounting_client, sale_return_factory, product):
        ret = sale_return_factory()

        response = accounting_client.post(f'{RETURNS_URL}{ret.pk}/approve/', {}, format='json')

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data['return']['status'] == 'approved'
        assert data['return']['financial_note']['note_number'] == 'CN-000001'
        assert len(data['movements']) == 1
        assert data['movements'][0]['quantity'] == 2
        assert data['note']['note_type'] == 'sales'
        assert Decimal(data['note']['total_amount']) == Decimal('22.00')

    def test_double_approve_is_409(self, accounting_client, sale_return_factory):
        ret = sale_return_factory()
        url = f'{RETURNS_URL}{ret.pk}/approve/'

        accounting_client.post(url, {}, format='json')
        response = accounting_client.post(url, {}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()['error_type'] == 'already_decided'
        assert response.json()['current_status'] == 'approved'
        assert FinancialNote.objects.count() == 1
        assert InventoryMovement.objects.count() == 1

    def test_damaged_stock_policy_override(self, accounting_client, sale_return_factory, product):
        ret = sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 1, 'condition': 'defective'}])

        response = accounting_client.post(
            f'{RETURNS_URL}{ret.pk}/approve/', {'damaged_stock_policy': 'defective'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['movements'][0]['movement_type'] == 'sale_return_defective'

    def test_sales_role_cannot_approve(self, sales_client, sale_return_factory):
        ret = sale_return_factory()

        response = sales_client.post(f'{RETURNS_URL}{ret.pk}/approve/', {}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        ret.refresh_from_db()
        assert ret.status == ReturnStatusChoices.PENDING

    def test_unknown_return_is_404(self, accounting_client):
        response = accounting_client.post(
            f'{RETURNS_URL}00000000-0000-0000-0000-000000000000/approve/', {}, format='json'
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestRejectAndDeleteEndpoints:

    def test_reject(self, manager_client, sale_return_factory):
        ret = sale_return_factory()

        response = manager_client.post(
            f'{RETURNS_URL}{ret.pk}/reject/', {'reason': 'Outside return window'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['status'] == 'rejected'
        assert response.json()['rejection_reason'] == 'Outside return window'

    def test_reject_after_approve_is_409(self, manager_client, sale_return_factory):
        ret = sale_return_factory()
        manager_client.post(f'{RETURNS_URL}{ret.pk}/approve/', {}, format='json')

        response = manager_client.post(f'{RETURNS_URL}{ret.pk}/reject/', {}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()['current_status'] == 'approved'

    def test_delete_pending(self, sales_client, sale_return_factory):
        ret = sale_return_factory()

        response = sales_client.delete(f'{RETURNS_URL}{ret.pk}/')

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Return.objects.filter(pk=ret.pk).exists()

    def test_delete_decided_is_409(self, manager_client, sale_return_factory):
        ret = sale_return_factory()
        manager_client.post(f'{RETURNS_URL}{ret.pk}/reject/', {}, format='json')

        response = manager_client.delete(f'{RETURNS_URL}{ret.pk}/')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert Return.objects.filter(pk=ret.pk).exists()


@pytest.mark.django_db
class TestPermissions:

    def test_unauthenticated_is_401(self, api_client):
        response = api_client.get(RETURNS_URL)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_user_without_role_is_403(self, outsider_client):
        assert outsider_client.get(RETURNS_URL).status_code == status.HTTP_403_FORBIDDEN
        assert outsider_client.get(NOTES_URL).status_code == status.HTTP_403_FORBIDDEN
        assert outsider_client.get(MOVEMENTS_URL).status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestNotesAndLedgerEndpoints:

    @pytest.fixture
    def approved_return(self, sale_return_factory, organization):
        ret = sale_return_factory()
        approve_return(ret.pk, organization=organization)
        return ret

    def test_list_notes(self, sales_client, approved_return):
        response = sales_client.get(NOTES_URL)

        assert response.status_code == status.HTTP_200_OK
        results = response.json()['results']
        assert len(results) == 1
        assert results[0]['note_number'] == 'CN-000001'

    def test_apply_note(self, accounting_client, approved_return):
        note = FinancialNote.objects.get(source_return=approved_return)

        response = accounting_client.post(f'{NOTES_URL}{note.pk}/apply/', {}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['status'] == 'applied'

    def test_cancel_applied_note_is_409(self, accounting_client, approved_return):
        note = FinancialNote.objects.get(source_return=approved_return)
        accounting_client.post(f'{NOTES_URL}{note.pk}/apply/', {}, format='json')

        response = accounting_client.post(f'{NOTES_URL}{note.pk}/cancel/', {}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()['error_type'] == 'invalid_transition'

    def test_sales_role_cannot_apply_note(self, sales_client, approved_return):
        note = FinancialNote.objects.get(source_return=approved_return)

        response = sales_client.post(f'{NOTES_URL}{note.pk}/apply/', {}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_ledger_is_listed_and_filtered(self, sales_client, approved_return, product):
        response = sales_client.get(MOVEMENTS_URL, {'reference_return': str(approved_return.pk)})

        assert response.status_code == status.HTTP_200_OK
        results = response.json()['results']
        assert len(results) == 1
        assert results[0]['balance_after'] == 12

    def test_ledger_is_read_only(self, manager_client, approved_return, product):
        response = manager_client.post(
            MOVEMENTS_URL,
            {'product': str(product.pk), 'quantity': 5, 'movement_type': 'sale_return'},
            format='json'
        )

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
