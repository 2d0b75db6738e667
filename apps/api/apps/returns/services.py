"""
Returns service layer - the return state machine.

- CreateReturn: validate against the originating transaction, price lines, store pending
- Approve: one transaction for ledger rows, refund math, note and status
- Reject / DeletePendingReturn: status guard only, no ledger or note effects

Approve and Reject lock the return row before looking at its status and
hold the lock until commit, so a return leaves pending at most once.
"""
import uuid
from collections import Counter, OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from apps.contacts.models import ContactKindChoices
from apps.contacts.services import get_contact
from apps.core.observability import metrics, get_sanitized_logger
from apps.core.observability.events import (
    log_already_decided,
    log_idempotency_conflict,
    log_consistency_checkpoint,
    log_over_return_blocked,
    log_return_created,
    log_return_decided,
    log_return_deleted,
)
from apps.core.observability.tracing import trace_span
from apps.core.services import next_document_number
from apps.finance.models import FinancialNote
from apps.finance.services import issue_note
from apps.products.services import get_products_by_id
from apps.purchases.models import PurchaseOrder, PurchaseOrderLine, PurchaseOrderStatusChoices
from apps.sales.models import Sale, SaleLine, SaleStatusChoices
from apps.stock.models import InventoryMovement, MovementTypeChoices
from apps.stock.services import lock_products, record_movement

from .calculator import REFUND_POLICIES, calculate_totals, line_amounts
from .exceptions import AlreadyDecidedError, NotFoundError, OverReturnError, StorageError
from .models import (
    CONDITIONS_BY_KIND,
    ItemConditionChoices,
    Return,
    ReturnKindChoices,
    ReturnLine,
    ReturnStatusChoices,
)

logger = get_sanitized_logger(__name__)

RETURN_NUMBER_PREFIXES = {
    ReturnKindChoices.SALE.value: 'SR',
    ReturnKindChoices.PURCHASE.value: 'PR',
}

DAMAGED_STOCK_RESTOCK = 'restock'
DAMAGED_STOCK_DEFECTIVE = 'defective'
DAMAGED_STOCK_POLICIES = (DAMAGED_STOCK_RESTOCK, DAMAGED_STOCK_DEFECTIVE)


@dataclass
class ApprovalResult:
    return_obj: Return
    movements: List[InventoryMovement] = field(default_factory=list)
    note: Optional[FinancialNote] = None


def get_money_quantum() -> Decimal:
    return Decimal(str(getattr(settings, 'RETURNS_MONEY_QUANTUM', '0.01')))


def resolve_damaged_stock_policy(policy=None) -> str:
    policy = policy or getattr(settings, 'RETURNS_DAMAGED_STOCK_POLICY', DAMAGED_STOCK_RESTOCK)
    if policy not in DAMAGED_STOCK_POLICIES:
        raise ValidationError(
            {'damaged_stock_policy': f'Unknown damaged stock policy: {policy}'},
            code='invalid'
        )
    return policy


# ============================================================================
# Originating transactions
# ============================================================================

def _get_originating(kind, organization, originating_id):
    """Load the sale / purchase order a return reverses."""
    if kind == ReturnKindChoices.SALE:
        origin = Sale.objects.filter(organization=organization, pk=originating_id).first()
        if origin is None:
            raise NotFoundError('Sale not found.')
        if origin.status != SaleStatusChoices.COMPLETED:
            raise ValidationError(
                {'sale': f'Only completed sales can be returned (status: {origin.status})'},
                code='invalid'
            )
        return origin

    origin = PurchaseOrder.objects.filter(organization=organization, pk=originating_id).first()
    if origin is None:
        raise NotFoundError('Purchase order not found.')
    if origin.status != PurchaseOrderStatusChoices.RECEIVED:
        raise ValidationError(
            {'purchase_order': f'Only received purchase orders can be returned (status: {origin.status})'},
            code='invalid'
        )
    return origin


def _originating_lines(kind, originating_id, product_ids, lock=False):
    """Originating lines for the given products, oldest first."""
    if kind == ReturnKindChoices.SALE:
        queryset = SaleLine.objects.filter(sale_id=originating_id)
    else:
        queryset = PurchaseOrderLine.objects.filter(purchase_order_id=originating_id)

    queryset = queryset.filter(product_id__in=set(product_ids)).order_by('created_at', 'id')
    if lock:
        queryset = queryset.select_for_update()
    return list(queryset)


def _group_by_product(origin_lines):
    grouped = OrderedDict()
    for origin_line in origin_lines:
        grouped.setdefault(origin_line.product_id, []).append(origin_line)
    return grouped


def _check_returnable(kind, requested_by_product, origin_by_product):
    """
    Raise OverReturnError when a product asks for more units than remain.

    Remaining = sum over the originating lines of quantity - returned_quantity.
    """
    for product_id, requested in requested_by_product.items():
        origin_lines = origin_by_product.get(product_id)
        if not origin_lines:
            raise ValidationError(
                {'lines': f'Product {product_id} is not part of the originating transaction'},
                code='invalid'
            )

        available = sum(ol.remaining_returnable for ol in origin_lines)
        if requested > available:
            metrics.returns_over_return_attempts_total.labels(kind=kind).inc()
            log_over_return_blocked(kind, product_id, requested, available)
            raise OverReturnError(
                'Cannot return %(requested)s units of product %(product)s: '
                'only %(available)s remain returnable',
                params={'requested': requested, 'product': product_id, 'available': available},
            )


def _requested_by_product(items):
    requested = OrderedDict()
    for item in items:
        requested[item['product_id']] = requested.get(item['product_id'], 0) + item['quantity']
    return requested


# ============================================================================
# CreateReturn
# ============================================================================

def _parse_decimal(value, field_name, index):
    """Parse a line amount; it must fit its ReturnLine column unchanged."""
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        number = None
    if number is None or not number.is_finite():
        raise ValidationError(
            {'lines': f'Line {index}: {field_name} must be a number'},
            code='invalid'
        )

    column = ReturnLine._meta.get_field(field_name)
    whole_digits = column.max_digits - column.decimal_places
    if abs(number) >= Decimal(10) ** whole_digits:
        raise ValidationError(
            {'lines': f'Line {index}: {field_name} must have at most {whole_digits} digits before the decimal point'},
            code='max_whole_digits'
        )
    if number != number.quantize(Decimal(1).scaleb(-column.decimal_places)):
        raise ValidationError(
            {'lines': f'Line {index}: {field_name} must have at most {column.decimal_places} decimal places'},
            code='max_decimal_places'
        )
    return number


def _normalize_lines(kind, lines_data):
    """Validate raw line dicts; prices are resolved later against the origin."""
    if not lines_data:
        raise ValidationError({'lines': 'A return must have at least one line'}, code='invalid')

    allowed_conditions = CONDITIONS_BY_KIND[str(kind)]
    items = []

    for index, data in enumerate(lines_data, start=1):
        product_id = data.get('product_id') or data.get('product')
        if not product_id:
            raise ValidationError({'lines': f'Line {index}: product is required'}, code='invalid')
        product_id = _as_uuid(product_id)

        quantity = data.get('quantity')
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(
                {'lines': f'Line {index}: quantity must be a positive integer'},
                code='invalid'
            )

        condition = data.get('condition')
        if condition not in allowed_conditions:
            raise ValidationError(
                {'lines': (
                    f'Line {index}: condition must be one of '
                    f'{", ".join(sorted(allowed_conditions))} for {kind} returns'
                )},
                code='invalid'
            )

        item = {
            'product_id': product_id,
            'quantity': quantity,
            'condition': condition,
            'unit_price': None,
            'discount': Decimal('0'),
            'tax_rate': None,
        }
        for key in ('unit_price', 'discount', 'tax_rate'):
            if data.get(key) is not None:
                item[key] = _parse_decimal(data[key], key, index)

        if item['unit_price'] is not None and item['unit_price'] < 0:
            raise ValidationError({'lines': f'Line {index}: unit_price cannot be negative'}, code='invalid')
        if item['discount'] < 0:
            raise ValidationError({'lines': f'Line {index}: discount cannot be negative'}, code='invalid')
        if item['tax_rate'] is not None and not (0 <= item['tax_rate'] <= 100):
            raise ValidationError({'lines': f'Line {index}: tax_rate must be between 0 and 100'}, code='invalid')

        items.append(item)

    return items


def _resolve_counterparty(kind, organization, origin, counterparty_id):
    expected = origin.customer if kind == ReturnKindChoices.SALE else origin.supplier
    expected_kind = ContactKindChoices.CUSTOMER if kind == ReturnKindChoices.SALE else ContactKindChoices.SUPPLIER

    if not counterparty_id:
        return expected

    counterparty = get_contact(organization, counterparty_id)
    if counterparty is None:
        raise NotFoundError('Counterparty not found.')
    if counterparty.kind != expected_kind:
        raise ValidationError(
            {'counterparty': f'Counterparty must be a {expected_kind} for {kind} returns'},
            code='invalid'
        )
    if expected is not None and counterparty.pk != expected.pk:
        raise ValidationError(
            {'counterparty': 'Counterparty does not match the originating transaction'},
            code='invalid'
        )
    return counterparty


def _resolve_refund_type(kind, refund_type):
    if kind == ReturnKindChoices.PURCHASE:
        if refund_type:
            raise ValidationError(
                {'refund_type': 'Purchase returns have no refund type'},
                code='invalid'
            )
        return None

    refund_type = refund_type or getattr(settings, 'RETURNS_DEFAULT_REFUND_POLICY', 'full')
    if refund_type not in REFUND_POLICIES:
        raise ValidationError(
            {'refund_type': f'Refund type must be one of {", ".join(REFUND_POLICIES)}'},
            code='invalid'
        )
    return refund_type


def _same_request(existing, kind, originating_id, lines_data):
    """True when a replayed create asks for the return that already exists."""
    try:
        origin_id = uuid.UUID(str(originating_id))
        requested = Counter(
            (_as_uuid(data.get('product_id') or data.get('product')), data.get('quantity'))
            for data in lines_data or []
        )
    except (ValidationError, AttributeError):
        return False

    existing_origin = existing.sale_id if existing.kind == ReturnKindChoices.SALE else existing.purchase_order_id
    stored = Counter((line.product_id, line.quantity) for line in existing.lines.all())
    return existing.kind == str(kind) and existing_origin == origin_id and stored == requested


def _replay_existing(existing, kind, originating_id, lines_data, idempotency_key):
    """Return the existing return for a replayed key, refuse a reused one."""
    if not _same_request(existing, kind, originating_id, lines_data):
        metrics.returns_created_total.labels(kind=kind, result='idempotency_conflict').inc()
        log_idempotency_conflict(existing, idempotency_key)
        raise ValidationError(
            {'idempotency_key': 'Idempotency key was already used for a different return'},
            code='idempotency_conflict'
        )
    metrics.returns_created_total.labels(kind=existing.kind, result='idempotent').inc()
    return existing


def create_return(
    organization,
    kind,
    originating_id,
    lines,
    counterparty_id=None,
    reason='',
    refund_type=None,
    refund_reason='',
    notes='',
    return_number=None,
    return_date=None,
    currency=None,
    idempotency_key=None,
    created_by=None,
) -> Return:
    """
    Create a pending return.

    Args:
        organization: tenant
        kind: 'sale' or 'purchase'
        originating_id: Sale id (sale) or PurchaseOrder id (purchase)
        lines: list of dicts:
            - product_id: UUID
            - quantity: int > 0
            - condition: good|damaged|defective (sale),
              defective|damaged|excess|wrong_item (purchase)
            - unit_price, discount, tax_rate: optional, price defaults
              come from the originating line
        counterparty_id: defaults to the sale customer / PO supplier
        refund_type: full|partial|none (sale only, default from settings)
        return_number: optional caller-supplied number, else SR-/PR- sequence
        idempotency_key: retrying with the same key returns the same return

    Returns:
        Return in status pending, with lines

    Raises:
        ValidationError: bad input (OverReturnError for over-returns)
        NotFoundError: originating transaction, product or counterparty
            outside the organization

    Nothing is written when validation fails.
    """
    if kind not in (ReturnKindChoices.SALE, ReturnKindChoices.PURCHASE):
        raise ValidationError({'kind': 'Kind must be sale or purchase'}, code='invalid')

    with trace_span('create_return', attributes={'return.kind': kind}):
        if idempotency_key:
            existing = Return.objects.filter(organization=organization, idempotency_key=idempotency_key).first()
            if existing is not None:
                return _replay_existing(existing, kind, originating_id, lines, idempotency_key)

        try:
            ret, line_count = _create_return(
                organization, kind, originating_id, lines, counterparty_id, reason,
                refund_type, refund_reason, notes, return_number, return_date,
                currency, idempotency_key, created_by,
            )
        except ValidationError:
            metrics.returns_created_total.labels(kind=kind, result='validation_error').inc()
            raise
        except IntegrityError:
            # Lost an insert race on the idempotency key or return number
            if idempotency_key:
                existing = Return.objects.filter(organization=organization, idempotency_key=idempotency_key).first()
                if existing is not None:
                    return _replay_existing(existing, kind, originating_id, lines, idempotency_key)
            metrics.returns_created_total.labels(kind=kind, result='validation_error').inc()
            raise ValidationError({'return_number': 'Return number already exists'}, code='unique')

    metrics.returns_created_total.labels(kind=kind, result='success').inc()
    log_return_created(ret, line_count)
    return ret


def _create_return(
    organization, kind, originating_id, lines_data, counterparty_id, reason,
    refund_type, refund_reason, notes, return_number, return_date,
    currency, idempotency_key, created_by,
):
    items = _normalize_lines(kind, lines_data)
    origin = _get_originating(kind, organization, originating_id)
    counterparty = _resolve_counterparty(kind, organization, origin, counterparty_id)
    refund_type = _resolve_refund_type(kind, refund_type)

    products = get_products_by_id(organization, [item['product_id'] for item in items])
    for item in items:
        product = products.get(item['product_id'])
        if product is None:
            raise NotFoundError(f'Product {item["product_id"]} not found.')
        item['product'] = product

    requested = _requested_by_product(items)
    origin_by_product = _group_by_product(_originating_lines(kind, origin.pk, requested.keys()))
    _check_returnable(kind, requested, origin_by_product)

    # Price defaults from the first originating line of the product
    for item in items:
        origin_line = origin_by_product[item['product_id']][0]
        if item['unit_price'] is None:
            item['unit_price'] = origin_line.unit_price if kind == ReturnKindChoices.SALE else origin_line.unit_cost
        if item['tax_rate'] is None:
            item['tax_rate'] = origin_line.tax_rate
        gross = item['quantity'] * item['unit_price']
        if item['discount'] > gross:
            raise ValidationError(
                {'lines': f'Discount for {item["product"].sku} exceeds the line amount'},
                code='invalid'
            )

    return_lines = [
        ReturnLine(
            product=item['product'],
            product_name=item['product'].name,
            product_sku=item['product'].sku,
            quantity=item['quantity'],
            unit_price=item['unit_price'],
            discount=item['discount'],
            tax_rate=item['tax_rate'],
            condition=item['condition'],
            position=position,
        )
        for position, item in enumerate(items, start=1)
    ]
    for line in return_lines:
        amounts = line_amounts(line)
        line.tax_amount = amounts.tax_amount
        line.line_total = amounts.line_total

    totals = calculate_totals(return_lines, kind, refund_type, quantum=get_money_quantum())

    with transaction.atomic():
        ret = Return(
            organization=organization,
            return_number=return_number or next_document_number(organization, RETURN_NUMBER_PREFIXES[str(kind)]),
            kind=kind,
            sale=origin if kind == ReturnKindChoices.SALE else None,
            purchase_order=origin if kind == ReturnKindChoices.PURCHASE else None,
            counterparty=counterparty,
            status=ReturnStatusChoices.PENDING,
            refund_type=refund_type,
            amount=totals.subtotal,
            discount=totals.discount_total,
            tax=totals.tax_total,
            total=totals.total,
            refund_amount=totals.refund_amount,
            currency=currency or origin.currency,
            return_date=return_date or timezone.localdate(),
            reason=reason or '',
            refund_reason=refund_reason or '',
            notes=notes or '',
            idempotency_key=idempotency_key or None,
            created_by=created_by,
        )
        ret.save()

        for line in return_lines:
            line.return_obj = ret
        ReturnLine.objects.bulk_create(return_lines)

    return ret, len(return_lines)


def _as_uuid(value):
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError({'lines': f'Invalid product id: {value}'}, code='invalid')


# ============================================================================
# Approve / Reject / Delete
# ============================================================================

def _lock_return(return_id, organization):
    """SELECT ... FOR UPDATE on the return row, scoped to the tenant."""
    queryset = Return.objects.select_for_update()
    if organization is not None:
        queryset = queryset.filter(organization=organization)
    try:
        return queryset.get(pk=return_id)
    except (Return.DoesNotExist, ValidationError):
        raise NotFoundError('Return not found.')


def _ensure_pending(ret, attempted):
    if ret.status != ReturnStatusChoices.PENDING:
        metrics.returns_transition_total.labels(
            kind=ret.kind, to_status=attempted, result='already_decided'
        ).inc()
        log_already_decided(ret, attempted)
        raise AlreadyDecidedError(ret.status)


def _record_returned_quantities(ret, lines):
    """
    Re-validate against locked originating lines and record returned units.

    Units are allocated to originating lines oldest first.
    """
    requested = OrderedDict()
    for line in lines:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

    origin_lines = _originating_lines(ret.kind, ret.originating_id, requested.keys(), lock=True)
    origin_by_product = _group_by_product(origin_lines)
    _check_returnable(ret.kind, requested, origin_by_product)

    for product_id, quantity in requested.items():
        remaining = quantity
        for origin_line in origin_by_product[product_id]:
            if remaining <= 0:
                break
            take = min(remaining, origin_line.remaining_returnable)
            if take <= 0:
                continue
            origin_line.returned_quantity += take
            origin_line.save(update_fields=['returned_quantity'])
            remaining -= take


def _movement_for(ret, line, damaged_stock_policy):
    """(movement_type, signed delta) for one return line."""
    if ret.kind == ReturnKindChoices.PURCHASE:
        return MovementTypeChoices.PURCHASE_RETURN, -line.quantity

    if damaged_stock_policy == DAMAGED_STOCK_DEFECTIVE and line.condition != ItemConditionChoices.GOOD:
        return MovementTypeChoices.SALE_RETURN_DEFECTIVE, line.quantity
    return MovementTypeChoices.SALE_RETURN, line.quantity


def _approve_locked(return_id, organization, actor, damaged_stock_policy):
    ret = _lock_return(return_id, organization)
    _ensure_pending(ret, ReturnStatusChoices.APPROVED)

    lines = list(ret.lines.order_by('position', 'created_at'))

    _record_returned_quantities(ret, lines)

    products = lock_products(line.product_id for line in lines)
    movements = []
    for line in lines:
        movement_type, delta = _movement_for(ret, line, damaged_stock_policy)
        movements.append(record_movement(
            product=products[line.product_id],
            organization=ret.organization,
            delta=delta,
            movement_type=movement_type,
            reference_return=ret,
            reference_return_line=line,
            note=f'{ret.return_number}: {line.get_condition_display()}',
            created_by=actor,
        ))

    totals = calculate_totals(lines, ret.kind, ret.refund_type, quantum=get_money_quantum())

    note = issue_note(ret, totals, counterparty=ret.counterparty, created_by=actor)

    ret.amount = totals.subtotal
    ret.discount = totals.discount_total
    ret.tax = totals.tax_total
    ret.total = totals.total
    ret.refund_amount = totals.refund_amount
    ret.status = ReturnStatusChoices.APPROVED
    ret.decided_at = timezone.now()
    ret.decided_by = actor
    ret.save(update_fields=[
        'amount', 'discount', 'tax', 'total', 'refund_amount',
        'status', 'decided_at', 'decided_by', 'updated_at',
    ])

    return ApprovalResult(return_obj=ret, movements=movements, note=note)


@metrics.track_duration(metrics.returns_approve_duration_seconds)
def approve_return(return_id, organization=None, actor=None, damaged_stock_policy=None) -> ApprovalResult:
    """
    Approve a pending return.

    In one transaction, in this order:
        1. lock the return row; not pending -> AlreadyDecidedError
        2. re-validate and record returned quantities on the originating lines
        3. one ledger row per line (+qty for sale returns, -qty for
           purchase returns), counters floored at zero
        4. refund / debit via the calculator
        5. exactly one credit / debit note
        6. status approved, decided_at, decided_by

    Any failure rolls everything back and the return stays pending.

    Args:
        return_id: Return id
        organization: tenant scope (None = unscoped, for admin use)
        actor: approving user
        damaged_stock_policy: restock|defective, overrides the setting

    Returns:
        ApprovalResult(return_obj, movements, note)

    Raises:
        NotFoundError, AlreadyDecidedError, ValidationError (returned
        units changed since creation), StorageError (could not commit;
        safe to retry)
    """
    policy = resolve_damaged_stock_policy(damaged_stock_policy)

    with trace_span('approve_return', attributes={'return.id': str(return_id)}):
        try:
            with transaction.atomic():
                result = _approve_locked(return_id, organization, actor, policy)
        except DatabaseError as exc:
            metrics.returns_storage_failures_total.labels(operation='approve').inc()
            logger.error(
                'Return approval could not be committed',
                extra={
                    'event': 'return_approve_storage_error',
                    'return_id': str(return_id),
                    'error_type': exc.__class__.__name__,
                }
            )
            raise StorageError() from exc

    ret = result.return_obj
    metrics.returns_transition_total.labels(kind=ret.kind, to_status=ret.status, result='success').inc()
    log_return_decided(
        ret,
        note_id=str(result.note.id),
        note_number=result.note.note_number,
        movements_count=len(result.movements),
        damaged_stock_policy=policy,
    )
    log_consistency_checkpoint(
        'return_approval_consistency',
        entity_ids={'return_id': str(ret.id), 'note_id': str(result.note.id)},
        checks_passed={
            'one_movement_per_line': len(result.movements) == ret.lines.count(),
            'note_total_matches_return': result.note.total_amount == ret.total,
            'no_negative_balance': all(m.balance_after >= 0 for m in result.movements),
        },
    )
    return result


def reject_return(return_id, organization=None, actor=None, reason='') -> Return:
    """
    Reject a pending return. No ledger rows, no note.

    Raises:
        NotFoundError, AlreadyDecidedError (also when already rejected),
        StorageError
    """
    with trace_span('reject_return', attributes={'return.id': str(return_id)}):
        try:
            with transaction.atomic():
                ret = _lock_return(return_id, organization)
                _ensure_pending(ret, ReturnStatusChoices.REJECTED)

                ret.status = ReturnStatusChoices.REJECTED
                ret.rejection_reason = reason or ''
                ret.decided_at = timezone.now()
                ret.decided_by = actor
                ret.save(update_fields=['status', 'rejection_reason', 'decided_at', 'decided_by', 'updated_at'])
        except DatabaseError as exc:
            metrics.returns_storage_failures_total.labels(operation='reject').inc()
            logger.error(
                'Return rejection could not be committed',
                extra={
                    'event': 'return_reject_storage_error',
                    'return_id': str(return_id),
                    'error_type': exc.__class__.__name__,
                }
            )
            raise StorageError() from exc

    metrics.returns_transition_total.labels(kind=ret.kind, to_status=ret.status, result='success').inc()
    log_return_decided(ret)
    return ret


@transaction.atomic
def delete_pending_return(return_id, organization=None):
    """
    Delete a pending return and its lines.

    Raises:
        NotFoundError, AlreadyDecidedError once approved or rejected
    """
    ret = _lock_return(return_id, organization)
    _ensure_pending(ret, 'deleted')
    log_return_deleted(ret)
    ret.delete()
