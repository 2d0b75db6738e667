"""
Tests for CreateReturn.

Critical Behavior:
- a created return is always pending, priced from its lines
- every validation failure happens before any write
- over-returns are rejected against the originating lines' recorded
  returned quantity
"""
import pytest
import uuid
from decimal import Decimal
from django.core.exceptions import ValidationError

from apps.contacts.models import Contact, ContactKindChoices
from apps.products.models import Product
from apps.returns.exceptions import NotFoundError, OverReturnError
from apps.returns.models import Return, ReturnLine, ReturnStatusChoices
from apps.returns.services import approve_return, create_return
from apps.sales.models import Sale, SaleStatusChoices
from apps.stock.models import InventoryMovement


@pytest.mark.django_db
class TestCreateSaleReturn:

    def test_created_return_is_pending_and_priced(self, sale_return_factory, product):
        ret = sale_return_factory(
            lines=[{'product_id': product.pk, 'quantity': 2, 'condition': 'good'}]
        )

        assert ret.status == ReturnStatusChoices.PENDING
        assert ret.kind == 'sale'
        assert ret.amount == Decimal('20.00')
        assert ret.tax == Decimal('2.00')
        assert ret.total == Decimal('22.00')
        assert ret.refund_amount == Decimal('22.00')

    def test_line_prices_default_from_sale_line(self, sale_return_factory, product):
        ret = sale_return_factory()
        line = ret.lines.get()

        assert line.unit_price == Decimal('10.00')
        assert line.tax_rate == Decimal('10.00')
        assert line.product_name == 'Widget'
        assert line.product_sku == 'WID-001'

    def test_explicit_line_price_wins(self, sale_return_factory, product):
        ret = sale_return_factory(lines=[{
            'product_id': product.pk,
            'quantity': 1,
            'condition': 'good',
            'unit_price': '8.00',
            'tax_rate': '0',
        }])

        assert ret.total == Decimal('8.00')

    def test_creation_has_no_side_effects(self, sale_return_factory, product, completed_sale):
        sale_return_factory()

        product.refresh_from_db()
        assert product.stock_quantity == 10
        assert InventoryMovement.objects.count() == 0
        assert completed_sale.lines.get(product=product).returned_quantity == 0

    def test_return_number_sequence(self, sale_return_factory):
        first = sale_return_factory()
        second = sale_return_factory()

        assert first.return_number == 'SR-000001'
        assert second.return_number == 'SR-000002'

    def test_caller_supplied_return_number(self, sale_return_factory):
        ret = sale_return_factory(return_number='RMA-42')

        assert ret.return_number == 'RMA-42'

    def test_duplicate_return_number_rejected(self, sale_return_factory):
        sale_return_factory(return_number='RMA-42')

        with pytest.raises(ValidationError):
            sale_return_factory(return_number='RMA-42')

        assert Return.objects.filter(return_number='RMA-42').count() == 1

    def test_default_refund_policy_from_settings(self, sale_return_factory, settings):
        settings.RETURNS_DEFAULT_REFUND_POLICY = 'none'

        ret = sale_return_factory(refund_type=None)

        assert ret.refund_type == 'none'
        assert ret.refund_amount == Decimal('0.00')

    def test_partial_refund_counts_good_lines_only(self, sale_return_factory, product, second_product):
        ret = sale_return_factory(
            refund_type='partial',
            lines=[
                {'product_id': product.pk, 'quantity': 2, 'condition': 'good'},
                {'product_id': second_product.pk, 'quantity': 1, 'condition': 'damaged'},
            ]
        )

        assert ret.amount == Decimal('40.00')
        assert ret.tax == Decimal('2.00')
        assert ret.total == Decimal('42.00')
        assert ret.refund_amount == Decimal('22.00')

    def test_lines_keep_request_order(self, sale_return_factory, product, second_product):
        ret = sale_return_factory(lines=[
            {'product_id': second_product.pk, 'quantity': 1, 'condition': 'good'},
            {'product_id': product.pk, 'quantity': 1, 'condition': 'good'},
        ])

        assert [line.product_id for line in ret.lines.all()] == [second_product.pk, product.pk]

    def test_counterparty_defaults_to_sale_customer(self, sale_return_factory, customer):
        ret = sale_return_factory()

        assert ret.counterparty == customer


@pytest.mark.django_db
class TestCreateReturnValidation:
    """Every failure leaves no Return behind."""

    def test_empty_lines(self, sale_return_factory):
        with pytest.raises(ValidationError):
            sale_return_factory(lines=[])

        assert Return.objects.count() == 0

    @pytest.mark.parametrize('quantity', [0, -1, 1.5, '2', True])
    def test_quantity_must_be_positive_integer(self, sale_return_factory, product, quantity):
        with pytest.raises(ValidationError):
            sale_return_factory(lines=[{'product_id': product.pk, 'quantity': quantity, 'condition': 'good'}])

        assert Return.objects.count() == 0

    def test_condition_must_fit_kind(self, sale_return_factory, product):
        with pytest.raises(ValidationError):
            sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 1, 'condition': 'excess'}])

    def test_unknown_product(self, sale_return_factory):
        with pytest.raises(NotFoundError):
            sale_return_factory(lines=[{'product_id': uuid.uuid4(), 'quantity': 1, 'condition': 'good'}])

    def test_product_of_another_tenant(self, sale_return_factory, other_organization):
        foreign = Product.objects.create(
            organization=other_organization, sku='WID-001', name='Widget', price=Decimal('10.00')
        )

        with pytest.raises(NotFoundError):
            sale_return_factory(lines=[{'product_id': foreign.pk, 'quantity': 1, 'condition': 'good'}])

    def test_product_not_on_sale(self, sale_return_factory, organization):
        unsold = Product.objects.create(
            organization=organization, sku='UNSOLD', name='Unsold', price=Decimal('1.00')
        )

        with pytest.raises(ValidationError):
            sale_return_factory(lines=[{'product_id': unsold.pk, 'quantity': 1, 'condition': 'good'}])

        assert Return.objects.count() == 0

    def test_sale_of_another_tenant(self, sale_return_factory, other_organization):
        foreign_sale = Sale.objects.create(organization=other_organization, sale_number='INV-X')

        with pytest.raises(NotFoundError):
            sale_return_factory(originating_id=foreign_sale.pk)

    def test_sale_must_be_completed(self, sale_return_factory, completed_sale):
        Sale.objects.filter(pk=completed_sale.pk).update(status=SaleStatusChoices.CANCELLED)

        with pytest.raises(ValidationError):
            sale_return_factory()

    def test_refund_type_must_be_known(self, sale_return_factory):
        with pytest.raises(ValidationError):
            sale_return_factory(refund_type='store_credit')

    def test_discount_cannot_exceed_line_amount(self, sale_return_factory, product):
        with pytest.raises(ValidationError):
            sale_return_factory(lines=[{
                'product_id': product.pk, 'quantity': 1, 'condition': 'good', 'discount': '50.00',
            }])

    def test_unknown_kind(self, organization, completed_sale, product):
        with pytest.raises(ValidationError):
            create_return(
                organization=organization,
                kind='exchange',
                originating_id=completed_sale.pk,
                lines=[{'product_id': product.pk, 'quantity': 1, 'condition': 'good'}],
            )


@pytest.mark.django_db
class TestLineAmountPrecision:
    """Line amounts must fit their columns, so approval prices the same lines."""

    @pytest.mark.parametrize('key,value', [
        ('unit_price', '10.005'),
        ('discount', '0.001'),
        ('tax_rate', '10.125'),
        ('unit_price', '10000000000'),
        ('unit_price', 'NaN'),
    ])
    def test_out_of_range_amounts_rejected(self, sale_return_factory, product, key, value):
        line = {'product_id': product.pk, 'quantity': 1, 'condition': 'good', key: value}

        with pytest.raises(ValidationError):
            sale_return_factory(lines=[line])

        assert Return.objects.count() == 0

    def test_trailing_zeros_accepted(self, sale_return_factory, product):
        ret = sale_return_factory(lines=[{
            'product_id': product.pk, 'quantity': 1, 'condition': 'good',
            'unit_price': '9.500', 'tax_rate': '0',
        }])

        assert ret.total == Decimal('9.50')

    def test_pending_amounts_match_issued_note(self, sale_return_factory, product, organization):
        ret = sale_return_factory(lines=[{
            'product_id': product.pk, 'quantity': 3, 'condition': 'good',
            'unit_price': '3.33', 'discount': '0.01', 'tax_rate': '7.25',
        }])
        pending_total, pending_refund = ret.total, ret.refund_amount

        note = approve_return(ret.pk, organization=organization).note

        assert note.total_amount == pending_total
        assert note.refund_amount == pending_refund


@pytest.mark.django_db
class TestOverReturn:
    """
    Scenario: the sale has 5 Widgets.

    Expected: asking for more than the remaining returnable units fails
    before any write.
    """

    def test_more_than_sold_is_rejected(self, sale_return_factory, product):
        with pytest.raises(OverReturnError) as exc_info:
            sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 6, 'condition': 'good'}])

        assert exc_info.value.code == 'over_return'
        assert Return.objects.count() == 0
        assert ReturnLine.objects.count() == 0

    def test_split_lines_are_summed_per_product(self, sale_return_factory, product):
        with pytest.raises(OverReturnError):
            sale_return_factory(lines=[
                {'product_id': product.pk, 'quantity': 3, 'condition': 'good'},
                {'product_id': product.pk, 'quantity': 3, 'condition': 'damaged'},
            ])

    def test_exactly_remaining_is_accepted(self, sale_return_factory, product):
        ret = sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 5, 'condition': 'good'}])

        assert ret.lines.get().quantity == 5

    def test_already_returned_units_cannot_be_returned_again(self, sale_return_factory, product, organization):
        first = sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 4, 'condition': 'good'}])
        approve_return(first.pk, organization=organization)

        with pytest.raises(OverReturnError):
            sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 2, 'condition': 'good'}])

        ret = sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 1, 'condition': 'good'}])
        assert ret.status == ReturnStatusChoices.PENDING

    def test_pending_returns_do_not_reserve_units(self, sale_return_factory, product):
        # Only approval records returned units; the second pending
        # return is caught at approval time instead
        sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 5, 'condition': 'good'}])
        second = sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 5, 'condition': 'good'}])

        assert second.status == ReturnStatusChoices.PENDING


@pytest.mark.django_db
class TestCounterparty:

    def test_matching_counterparty_accepted(self, sale_return_factory, customer):
        ret = sale_return_factory(counterparty_id=customer.pk)

        assert ret.counterparty_id == customer.pk

    def test_unknown_counterparty(self, sale_return_factory):
        with pytest.raises(NotFoundError):
            sale_return_factory(counterparty_id=uuid.uuid4())

    def test_wrong_contact_kind(self, sale_return_factory, supplier):
        with pytest.raises(ValidationError):
            sale_return_factory(counterparty_id=supplier.pk)

    def test_different_customer(self, sale_return_factory, organization):
        stranger = Contact.objects.create(
            organization=organization, kind=ContactKindChoices.CUSTOMER, name='Someone Else'
        )

        with pytest.raises(ValidationError):
            sale_return_factory(counterparty_id=stranger.pk)


@pytest.mark.django_db
class TestIdempotentCreate:

    def test_same_key_returns_same_return(self, sale_return_factory):
        first = sale_return_factory(idempotency_key='client-req-1')
        second = sale_return_factory(idempotency_key='client-req-1')

        assert first.pk == second.pk
        assert Return.objects.count() == 1

    def test_different_keys_create_two(self, sale_return_factory):
        sale_return_factory(idempotency_key='client-req-1')
        sale_return_factory(idempotency_key='client-req-2')

        assert Return.objects.count() == 2

    def test_keys_are_scoped_to_organization(
        self, sale_return_factory, other_organization, other_org_manager
    ):
        sale_return_factory(idempotency_key='shared-key')

        customer = Contact.objects.create(
            organization=other_organization, kind=ContactKindChoices.CUSTOMER, name='Other'
        )
        product = Product.objects.create(
            organization=other_organization, sku='O-1', name='Other', price=Decimal('5.00')
        )
        sale = Sale.objects.create(organization=other_organization, customer=customer, sale_number='INV-1')
        sale.lines.create(product=product, product_name='Other', quantity=1, unit_price=Decimal('5.00'))

        other = create_return(
            organization=other_organization,
            kind='sale',
            originating_id=sale.pk,
            lines=[{'product_id': product.pk, 'quantity': 1, 'condition': 'good'}],
            idempotency_key='shared-key',
            created_by=other_org_manager,
        )

        assert Return.objects.count() == 2
        assert other.return_number == 'SR-000001'

    def test_reused_key_with_different_lines_rejected(self, sale_return_factory, product):
        first = sale_return_factory(idempotency_key='client-req-1')

        with pytest.raises(ValidationError):
            sale_return_factory(
                idempotency_key='client-req-1',
                lines=[{'product_id': product.pk, 'quantity': 1, 'condition': 'good'}],
            )

        assert list(Return.objects.values_list('pk', flat=True)) == [first.pk]

    def test_reused_key_for_another_transaction_rejected(
        self, sale_return_factory, purchase_return_factory
    ):
        sale_return_factory(idempotency_key='client-req-1')

        with pytest.raises(ValidationError):
            purchase_return_factory(idempotency_key='client-req-1')

        assert Return.objects.count() == 1

    def test_replay_with_string_ids_returns_same_return(self, sale_return_factory, completed_sale, product):
        first = sale_return_factory(idempotency_key='client-req-1')

        second = sale_return_factory(
            idempotency_key='client-req-1',
            originating_id=str(completed_sale.pk),
            lines=[{'product_id': str(product.pk), 'quantity': 2, 'condition': 'good'}],
        )

        assert second.pk == first.pk
