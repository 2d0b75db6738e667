"""
Global test fixtures for pytest.

Provides reusable fixtures for the returns engine:
- Organizations and users by role (Django groups)
- Authenticated API clients by role
- Contacts, products, a completed sale and a received purchase order
- Factories for returns
"""
import pytest
from decimal import Decimal
from django.contrib.auth.models import Group
from rest_framework.test import APIClient

from apps.authz.models import User
from apps.contacts.models import Contact, ContactKindChoices
from apps.core.models import Organization
from apps.core.observability.correlation import clear_request_context
from apps.products.models import Product
from apps.purchases.models import PurchaseOrder, PurchaseOrderLine, PurchaseOrderStatusChoices
from apps.returns.services import create_return
from apps.sales.models import Sale, SaleLine, SaleStatusChoices


@pytest.fixture(autouse=True)
def _clear_log_context():
    yield
    clear_request_context()


# ============================================================================
# Organizations
# ============================================================================

@pytest.fixture
def organization(db):
    return Organization.objects.create(name='Acme Retail', default_currency='USD')


@pytest.fixture
def other_organization(db):
    return Organization.objects.create(name='Other Tenant', default_currency='EUR')


# ============================================================================
# Users
# ============================================================================

def _make_user(email, organization=None, groups=(), **extra):
    user = User.objects.create_user(
        email=email,
        password='testpass123',
        organization=organization,
        is_active=True,
        **extra
    )
    for name in groups:
        group, _ = Group.objects.get_or_create(name=name)
        user.groups.add(group)
    return user


@pytest.fixture
def manager_user(organization):
    """Manager: can create and decide returns."""
    return _make_user('manager@test.com', organization, groups=['Manager'])


@pytest.fixture
def sales_user(organization):
    """Sales: can create returns but not decide them."""
    return _make_user('sales@test.com', organization, groups=['Sales'])


@pytest.fixture
def accounting_user(organization):
    """Accounting: decides returns and settles notes."""
    return _make_user('accounting@test.com', organization, groups=['Accounting'])


@pytest.fixture
def outsider_user(organization):
    """Member of the organization without any returns role."""
    return _make_user('outsider@test.com', organization)


@pytest.fixture
def other_org_manager(other_organization):
    return _make_user('manager@other.com', other_organization, groups=['Manager'])


# ============================================================================
# API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def manager_client(manager_user):
    return _client_for(manager_user)


@pytest.fixture
def sales_client(sales_user):
    return _client_for(sales_user)


@pytest.fixture
def accounting_client(accounting_user):
    return _client_for(accounting_user)


@pytest.fixture
def outsider_client(outsider_user):
    return _client_for(outsider_user)


@pytest.fixture
def other_org_client(other_org_manager):
    return _client_for(other_org_manager)


# ============================================================================
# Data Fixtures
# ============================================================================

@pytest.fixture
def customer(organization):
    return Contact.objects.create(
        organization=organization,
        kind=ContactKindChoices.CUSTOMER,
        name='Jane Customer',
        email='jane@customer.test'
    )


@pytest.fixture
def supplier(organization):
    return Contact.objects.create(
        organization=organization,
        kind=ContactKindChoices.SUPPLIER,
        name='Widgets Wholesale',
        email='orders@widgets.test'
    )


@pytest.fixture
def product(organization):
    """Widget: 10 units in stock, sold at 10.00 with 10% tax."""
    return Product.objects.create(
        organization=organization,
        sku='WID-001',
        name='Widget',
        price=Decimal('10.00'),
        cost=Decimal('6.00'),
        stock_quantity=10
    )


@pytest.fixture
def second_product(organization):
    """Gadget: 5 units in stock, sold at 20.00 without tax."""
    return Product.objects.create(
        organization=organization,
        sku='GAD-001',
        name='Gadget',
        price=Decimal('20.00'),
        cost=Decimal('12.00'),
        stock_quantity=5
    )


@pytest.fixture
def completed_sale(organization, customer, product, second_product):
    """
    Completed sale:
    - 5 x Widget @ 10.00, 10% tax
    - 3 x Gadget @ 20.00, no tax
    """
    sale = Sale.objects.create(
        organization=organization,
        customer=customer,
        sale_number='INV-0001',
        status=SaleStatusChoices.COMPLETED,
        total=Decimal('115.00')
    )
    SaleLine.objects.create(
        sale=sale,
        product=product,
        product_name=product.name,
        quantity=5,
        unit_price=Decimal('10.00'),
        tax_rate=Decimal('10.00')
    )
    SaleLine.objects.create(
        sale=sale,
        product=second_product,
        product_name=second_product.name,
        quantity=3,
        unit_price=Decimal('20.00'),
        tax_rate=Decimal('0.00')
    )
    return sale


@pytest.fixture
def received_purchase_order(organization, supplier, product):
    """Received purchase order: 10 x Widget @ 6.00, no tax."""
    po = PurchaseOrder.objects.create(
        organization=organization,
        supplier=supplier,
        po_number='PO-0001',
        status=PurchaseOrderStatusChoices.RECEIVED,
        total=Decimal('60.00')
    )
    PurchaseOrderLine.objects.create(
        purchase_order=po,
        product=product,
        quantity=10,
        unit_cost=Decimal('6.00'),
        tax_rate=Decimal('0.00')
    )
    return po


# ============================================================================
# Factory-style Fixtures
# ============================================================================

@pytest.fixture
def sale_return_factory(organization, completed_sale, product, manager_user):
    """
    Factory fixture for pending sale returns against ``completed_sale``.

    Usage:
        ret = sale_return_factory()
        ret = sale_return_factory(refund_type='partial', lines=[...])
    """
    def _create(**kwargs):
        defaults = {
            'organization': organization,
            'kind': 'sale',
            'originating_id': completed_sale.pk,
            'lines': [{'product_id': product.pk, 'quantity': 2, 'condition': 'good'}],
            'refund_type': 'full',
            'created_by': manager_user,
        }
        defaults.update(kwargs)
        return create_return(**defaults)

    return _create


@pytest.fixture
def purchase_return_factory(organization, received_purchase_order, product, manager_user):
    """Factory fixture for pending purchase returns against ``received_purchase_order``."""
    def _create(**kwargs):
        defaults = {
            'organization': organization,
            'kind': 'purchase',
            'originating_id': received_purchase_order.pk,
            'lines': [{'product_id': product.pk, 'quantity': 5, 'condition': 'defective'}],
            'reason': 'Defective batch',
            'created_by': manager_user,
        }
        defaults.update(kwargs)
        return create_return(**defaults)

    return _create
