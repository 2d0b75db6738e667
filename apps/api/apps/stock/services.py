"""
Stock services - the inventory ledger writer.

All return-driven changes to Product.stock_quantity / defective_quantity
go through record_movement().
"""
from django.db import transaction
from django.db.models import F, Sum, Value
from django.db.models.functions import Greatest
from django.core.exceptions import ValidationError
from typing import Iterable, Dict

from apps.core.observability import metrics
from apps.core.observability.events import log_stock_clamped
from apps.products.models import Product

from .models import InventoryMovement, MovementTypeChoices


def counter_field_for(movement_type) -> str:
    """Product counter a movement type adjusts."""
    if movement_type == MovementTypeChoices.SALE_RETURN_DEFECTIVE:
        return 'defective_quantity'
    return 'stock_quantity'


def lock_products(product_ids: Iterable) -> Dict:
    """
    Lock product rows in a stable (pk) order.

    Callers touching several products in one transaction lock them all
    up front so two approvals never wait on each other in opposite order.
    """
    products = (
        Product.objects
        .select_for_update()
        .filter(pk__in=set(product_ids))
        .order_by('pk')
    )
    return {product.pk: product for product in products}


@transaction.atomic
def record_movement(
    product,
    organization,
    delta: int,
    movement_type: MovementTypeChoices,
    reference_return=None,
    reference_return_line=None,
    note: str = '',
    created_by=None
) -> InventoryMovement:
    """
    Append one ledger row and adjust the product counter by the same delta.

    Args:
        product: Product instance
        organization: Organization the movement belongs to
        delta: Signed quantity (positive adds, negative removes)
        movement_type: MovementTypeChoices value
        reference_return: Return that caused the movement
        reference_return_line: ReturnLine that caused the movement
        note: Free text
        created_by: User recording the movement

    Returns:
        Created InventoryMovement instance

    Raises:
        ValidationError: zero delta, wrong sign or cross-tenant product

    The counter is updated with a single UPDATE ... SET counter =
    GREATEST(counter + delta, 0) while the product row is locked, so the
    counter never goes negative and no concurrent writer is lost.
    """
    if delta == 0:
        raise ValidationError({'quantity': 'Quantity cannot be zero'})

    if product.organization_id != organization.pk:
        raise ValidationError({'product': 'Product belongs to another organization'})

    field = counter_field_for(movement_type)

    locked = Product.objects.select_for_update().get(pk=product.pk)
    before = getattr(locked, field)

    Product.objects.filter(pk=product.pk).update(
        **{field: Greatest(F(field) + delta, Value(0))}
    )

    balance_after = max(before + delta, 0)
    applied = balance_after - before

    movement = InventoryMovement(
        organization=organization,
        product=product,
        movement_type=movement_type,
        quantity=delta,
        applied_quantity=applied,
        balance_after=balance_after,
        reference_return=reference_return,
        reference_return_line=reference_return_line,
        note=note,
        created_by=created_by,
    )
    movement.save()

    # Keep the caller's instance in sync with the row
    setattr(product, field, balance_after)

    # Only count movements that actually commit
    transaction.on_commit(lambda: _report_movement(movement, requested=delta))

    return movement


def _report_movement(movement, requested):
    metrics.inventory_movements_total.labels(movement_type=movement.movement_type).inc()

    if movement.applied_quantity != requested:
        metrics.stock_clamped_at_zero_total.labels(movement_type=movement.movement_type).inc()
        log_stock_clamped(movement, requested=requested, applied=movement.applied_quantity)


def get_ledger_balance(product, counter='stock_quantity') -> int:
    """
    Sum of applied deltas for one product counter.

    Only return-driven changes are in the ledger, so this equals the
    counter minus whatever opening balance the product had.
    """
    if counter == 'defective_quantity':
        types = [MovementTypeChoices.SALE_RETURN_DEFECTIVE]
    else:
        types = [MovementTypeChoices.SALE_RETURN, MovementTypeChoices.PURCHASE_RETURN]

    total = InventoryMovement.objects.filter(
        product=product,
        movement_type__in=types,
    ).aggregate(total=Sum('applied_quantity'))['total']
    return total or 0
