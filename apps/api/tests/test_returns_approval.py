"""
Tests for Approve / Reject / DeletePendingReturn on sale returns.

Critical Behavior:
- approval writes one ledger row per line, one credit note, and
  records returned units on the sale lines, all in one transaction
- a return leaves pending at most once; repeated or stale approvals
  fail with AlreadyDecided and write nothing
- rejection has no ledger or note side effects
"""
import pytest
import uuid
from decimal import Decimal
from django.core.exceptions import ValidationError

from apps.finance.models import FinancialNote, NoteStatusChoices
from apps.returns.exceptions import AlreadyDecidedError, NotFoundError, OverReturnError
from apps.returns.models import Return, ReturnLine, ReturnStatusChoices
from apps.returns.services import approve_return, delete_pending_return, reject_return
from apps.stock.models import InventoryMovement, MovementTypeChoices


@pytest.mark.django_db
class TestApproveSaleReturn:

    def test_approval_moves_stock_and_issues_credit_note(
        self, sale_return_factory, product, organization, accounting_user
    ):
        ret = sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 2, 'condition': 'good'}])

        result = approve_return(ret.pk, organization=organization, actor=accounting_user)

        ret.refresh_from_db()
        product.refresh_from_db()
        assert ret.status == ReturnStatusChoices.APPROVED
        assert ret.decided_by == accounting_user
        assert ret.decided_at is not None
        assert product.stock_quantity == 12

        assert len(result.movements) == 1
        movement = result.movements[0]
        assert movement.movement_type == MovementTypeChoices.SALE_RETURN
        assert movement.quantity == 2
        assert movement.applied_quantity == 2
        assert movement.balance_after == 12
        assert movement.reference_return_id == ret.pk

        note = result.note
        assert note.note_type == 'sales'
        assert note.status == NoteStatusChoices.ISSUED
        assert note.note_number == 'CN-000001'
        assert note.total_amount == Decimal('22.00')
        assert note.refund_amount == Decimal('22.00')
        assert note.counterparty == ret.counterparty
        assert note.reason == 'Full refund for returned items'

    def test_one_movement_per_line(self, sale_return_factory, product, second_product, organization):
        ret = sale_return_factory(lines=[
            {'product_id': product.pk, 'quantity': 1, 'condition': 'good'},
            {'product_id': product.pk, 'quantity': 1, 'condition': 'damaged'},
            {'product_id': second_product.pk, 'quantity': 2, 'condition': 'good'},
        ])

        result = approve_return(ret.pk, organization=organization)

        assert len(result.movements) == 3
        assert InventoryMovement.objects.filter(reference_return=ret).count() == 3
        line_ids = set(ReturnLine.objects.filter(return_obj=ret).values_list('id', flat=True))
        assert {m.reference_return_line_id for m in result.movements} == line_ids

        product.refresh_from_db()
        second_product.refresh_from_db()
        assert product.stock_quantity == 12
        assert second_product.stock_quantity == 7

    def test_returned_quantity_recorded_on_sale_lines(self, sale_return_factory, product, completed_sale, organization):
        ret = sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 3, 'condition': 'good'}])

        approve_return(ret.pk, organization=organization)

        sale_line = completed_sale.lines.get(product=product)
        assert sale_line.returned_quantity == 3
        assert sale_line.remaining_returnable == 2

    @pytest.mark.parametrize('refund_type,expected_refund', [
        ('full', Decimal('42.00')),
        ('partial', Decimal('22.00')),
        ('none', Decimal('0.00')),
    ])
    def test_note_amounts_follow_refund_policy(
        self, sale_return_factory, product, second_product, organization, refund_type, expected_refund
    ):
        ret = sale_return_factory(
            refund_type=refund_type,
            lines=[
                {'product_id': product.pk, 'quantity': 2, 'condition': 'good'},
                {'product_id': second_product.pk, 'quantity': 1, 'condition': 'damaged'},
            ]
        )

        result = approve_return(ret.pk, organization=organization)

        # Ledger and note exist whatever the refund policy
        assert len(result.movements) == 2
        assert result.note.amount == Decimal('40.00')
        assert result.note.tax_amount == Decimal('2.00')
        assert result.note.total_amount == Decimal('42.00')
        assert result.note.refund_amount == expected_refund

    def test_note_reason_for_partial_refund(self, sale_return_factory, organization):
        ret = sale_return_factory(refund_type='partial', refund_reason='Box opened')

        result = approve_return(ret.pk, organization=organization)

        assert result.note.reason == 'Partial refund: Box opened'

    def test_note_reason_for_no_refund_without_reason(self, sale_return_factory, organization):
        ret = sale_return_factory(refund_type='none')

        result = approve_return(ret.pk, organization=organization)

        assert result.note.reason == 'No refund: Per agreement'

    def test_approval_of_unknown_return(self, organization):
        with pytest.raises(NotFoundError):
            approve_return(uuid.uuid4(), organization=organization)

    def test_approval_is_tenant_scoped(self, sale_return_factory, other_organization):
        ret = sale_return_factory()

        with pytest.raises(NotFoundError):
            approve_return(ret.pk, organization=other_organization)

        ret.refresh_from_db()
        assert ret.status == ReturnStatusChoices.PENDING


@pytest.mark.django_db
class TestAtMostOnceApproval:
    """
    Scenario: the same return is approved twice (double click, retry,
    two tabs).

    Expected: exactly one transition, one note, N ledger rows.
    """

    def test_second_approval_raises_already_decided(self, sale_return_factory, product, organization):
        ret = sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 2, 'condition': 'good'}])
        approve_return(ret.pk, organization=organization)

        with pytest.raises(AlreadyDecidedError) as exc_info:
            approve_return(ret.pk, organization=organization)

        assert exc_info.value.current_status == ReturnStatusChoices.APPROVED
        assert FinancialNote.objects.filter(source_return=ret).count() == 1
        assert InventoryMovement.objects.filter(reference_return=ret).count() == 1
        product.refresh_from_db()
        assert product.stock_quantity == 12

    def test_stale_instance_cannot_approve_again(self, sale_return_factory, organization):
        ret = sale_return_factory()
        stale = Return.objects.get(pk=ret.pk)
        approve_return(ret.pk, organization=organization)

        # The in-memory copy still says pending; the locked row does not
        assert stale.status == ReturnStatusChoices.PENDING
        with pytest.raises(AlreadyDecidedError):
            approve_return(stale.pk, organization=organization)

        assert FinancialNote.objects.count() == 1

    def test_repeated_approvals_yield_one_note(self, sale_return_factory, organization):
        ret = sale_return_factory()

        outcomes = []
        for _ in range(5):
            try:
                approve_return(ret.pk, organization=organization)
                outcomes.append('approved')
            except AlreadyDecidedError:
                outcomes.append('already_decided')

        assert outcomes.count('approved') == 1
        assert FinancialNote.objects.filter(source_return=ret).count() == 1

    def test_approve_after_reject_fails(self, sale_return_factory, organization):
        ret = sale_return_factory()
        reject_return(ret.pk, organization=organization)

        with pytest.raises(AlreadyDecidedError) as exc_info:
            approve_return(ret.pk, organization=organization)

        assert exc_info.value.current_status == ReturnStatusChoices.REJECTED
        assert InventoryMovement.objects.count() == 0
        assert FinancialNote.objects.count() == 0

    def test_competing_pending_returns_cannot_both_take_units(self, sale_return_factory, product, organization):
        first = sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 4, 'condition': 'good'}])
        second = sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 4, 'condition': 'good'}])
        approve_return(first.pk, organization=organization)

        with pytest.raises(OverReturnError):
            approve_return(second.pk, organization=organization)

        second.refresh_from_db()
        assert second.status == ReturnStatusChoices.PENDING
        assert InventoryMovement.objects.filter(reference_return=second).count() == 0


@pytest.mark.django_db
class TestDamagedStockPolicy:

    def test_restock_policy_puts_everything_back_on_sale(self, sale_return_factory, product, organization):
        ret = sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 2, 'condition': 'defective'}])

        result = approve_return(ret.pk, organization=organization, damaged_stock_policy='restock')

        product.refresh_from_db()
        assert result.movements[0].movement_type == MovementTypeChoices.SALE_RETURN
        assert product.stock_quantity == 12
        assert product.defective_quantity == 0

    def test_defective_policy_routes_non_good_lines(self, sale_return_factory, product, organization):
        ret = sale_return_factory(lines=[
            {'product_id': product.pk, 'quantity': 1, 'condition': 'good'},
            {'product_id': product.pk, 'quantity': 2, 'condition': 'damaged'},
        ])

        result = approve_return(ret.pk, organization=organization, damaged_stock_policy='defective')

        product.refresh_from_db()
        types = [m.movement_type for m in result.movements]
        assert types == [MovementTypeChoices.SALE_RETURN, MovementTypeChoices.SALE_RETURN_DEFECTIVE]
        assert product.stock_quantity == 11
        assert product.defective_quantity == 2

    def test_policy_comes_from_settings(self, sale_return_factory, product, organization, settings):
        settings.RETURNS_DAMAGED_STOCK_POLICY = 'defective'
        ret = sale_return_factory(lines=[{'product_id': product.pk, 'quantity': 1, 'condition': 'defective'}])

        approve_return(ret.pk, organization=organization)

        product.refresh_from_db()
        assert product.defective_quantity == 1

    def test_unknown_policy_rejected_before_any_write(self, sale_return_factory, organization):
        ret = sale_return_factory()

        with pytest.raises(ValidationError):
            approve_return(ret.pk, organization=organization, damaged_stock_policy='scrap')

        ret.refresh_from_db()
        assert ret.status == ReturnStatusChoices.PENDING


@pytest.mark.django_db
class TestRejectReturn:

    def test_reject_pending(self, sale_return_factory, organization, accounting_user, product):
        ret = sale_return_factory()

        rejected = reject_return(ret.pk, organization=organization, actor=accounting_user, reason='Outside window')

        assert rejected.status == ReturnStatusChoices.REJECTED
        assert rejected.rejection_reason == 'Outside window'
        assert rejected.decided_by == accounting_user
        assert InventoryMovement.objects.count() == 0
        assert FinancialNote.objects.count() == 0
        product.refresh_from_db()
        assert product.stock_quantity == 10

    def test_reject_after_approve_fails_without_writes(self, sale_return_factory, organization):
        ret = sale_return_factory()
        approve_return(ret.pk, organization=organization)
        ret.refresh_from_db()
        decided_at = ret.decided_at

        with pytest.raises(AlreadyDecidedError) as exc_info:
            reject_return(ret.pk, organization=organization, reason='Too late')

        ret.refresh_from_db()
        assert exc_info.value.current_status == ReturnStatusChoices.APPROVED
        assert ret.status == ReturnStatusChoices.APPROVED
        assert ret.rejection_reason == ''
        assert ret.decided_at == decided_at

    def test_reject_twice_fails(self, sale_return_factory, organization):
        ret = sale_return_factory()
        reject_return(ret.pk, organization=organization)

        with pytest.raises(AlreadyDecidedError):
            reject_return(ret.pk, organization=organization)


@pytest.mark.django_db
class TestDeletePendingReturn:

    def test_delete_pending_removes_return_and_lines(self, sale_return_factory, organization):
        ret = sale_return_factory()

        delete_pending_return(ret.pk, organization=organization)

        assert not Return.objects.filter(pk=ret.pk).exists()
        assert ReturnLine.objects.count() == 0

    def test_delete_after_approval_fails(self, sale_return_factory, organization):
        ret = sale_return_factory()
        approve_return(ret.pk, organization=organization)

        with pytest.raises(AlreadyDecidedError):
            delete_pending_return(ret.pk, organization=organization)

        assert Return.objects.filter(pk=ret.pk).exists()

    def test_model_delete_refuses_decided_return(self, sale_return_factory, organization):
        ret = sale_return_factory()
        reject_return(ret.pk, organization=organization)
        ret.refresh_from_db()

        with pytest.raises(ValidationError):
            ret.delete()
