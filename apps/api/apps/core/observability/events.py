"""
Domain events logging helpers.

Provides structured event logging for business operations.
"""
from typing import Dict, Optional
from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'return_approved', 'note_issued')
        entity_type: Type of entity (e.g., 'Return', 'FinancialNote')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, blocked, ...)
        **extra_fields: Additional fields to log (will be sanitized)

    Example:
        log_domain_event(
            'return_approved',
            entity_type='Return',
            entity_id=str(ret.id),
            entity_ids={'note_id': str(note.id)},
            movements_count=2,
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = entity_id

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))

    # Log at appropriate level based on result
    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'conflict']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_consistency_checkpoint(
    checkpoint_name: str,
    entity_ids: Dict[str, str],
    checks_passed: Dict[str, bool],
    **extra_fields
):
    """
    Log a consistency checkpoint event.

    Used to verify data integrity at critical points.

    Example:
        log_consistency_checkpoint(
            'return_approval_consistency',
            entity_ids={'return_id': str(ret.id)},
            checks_passed={'one_movement_per_line': True, 'note_issued': True},
        )
    """
    all_passed = all(checks_passed.values())

    event_data = {
        'event': 'consistency_checkpoint',
        'checkpoint': checkpoint_name,
        'status': 'passed' if all_passed else 'failed',
        'checks': checks_passed,
    }
    event_data.update(entity_ids)
    event_data.update(sanitize_dict(extra_fields))

    if all_passed:
        logger.info(f'Checkpoint passed: {checkpoint_name}', extra=event_data)
    else:
        logger.error(f'Checkpoint FAILED: {checkpoint_name}', extra=event_data)


def _return_ids(ret):
    return {
        'return_id': str(ret.id),
        'organization_id': str(ret.organization_id),
    }


def log_return_created(ret, lines_count, **extra):
    """Log return creation event."""
    log_domain_event(
        'return_created',
        entity_type='Return',
        entity_id=str(ret.id),
        entity_ids=_return_ids(ret),
        result='success',
        kind=ret.kind,
        return_number=ret.return_number,
        lines_count=lines_count,
        **extra
    )


def log_return_decided(ret, **extra):
    """Log approve/reject decision on a return."""
    log_domain_event(
        f'return_{ret.status}',
        entity_type='Return',
        entity_id=str(ret.id),
        entity_ids=_return_ids(ret),
        result='success',
        kind=ret.kind,
        return_number=ret.return_number,
        **extra
    )


def log_return_deleted(ret):
    """Log deletion of a pending return."""
    log_domain_event(
        'return_deleted',
        entity_type='Return',
        entity_id=str(ret.id),
        entity_ids=_return_ids(ret),
        result='success',
        kind=ret.kind,
        return_number=ret.return_number,
    )


def log_already_decided(ret, attempted):
    """Log a transition attempt on a return that is no longer pending."""
    log_domain_event(
        'return_already_decided',
        entity_type='Return',
        entity_id=str(ret.id),
        entity_ids=_return_ids(ret),
        result='conflict',
        current_status=ret.status,
        attempted=attempted,
    )


def log_idempotency_conflict(ret, idempotency_key):
    """Log an idempotency key reused with a different return payload."""
    log_domain_event(
        'return_idempotency_conflict',
        entity_type='Return',
        entity_id=str(ret.id),
        entity_ids=_return_ids(ret),
        result='conflict',
        idempotency_key=idempotency_key,
    )


def log_over_return_blocked(kind, product_id, requested_qty, available_qty):
    """Log blocked over-return attempt."""
    log_domain_event(
        'return_over_return_blocked',
        entity_type='Product',
        entity_id=str(product_id),
        result='blocked',
        kind=kind,
        requested_qty=requested_qty,
        available_qty=available_qty,
    )


def log_stock_clamped(movement, requested, applied):
    """Log a stock decrement that hit the zero floor."""
    log_domain_event(
        'stock_clamped_at_zero',
        entity_type='InventoryMovement',
        entity_id=str(movement.id),
        entity_ids={'product_id': str(movement.product_id)},
        result='warning',
        movement_type=movement.movement_type,
        requested_quantity=requested,
        applied_quantity=applied,
    )


def log_note_event(note, action, **extra):
    """Log financial note lifecycle event (issued, applied, cancelled)."""
    log_domain_event(
        f'financial_note_{action}',
        entity_type='FinancialNote',
        entity_id=str(note.id),
        entity_ids={
            'note_id': str(note.id),
            'return_id': str(note.source_return_id),
        },
        result='success',
        note_type=note.note_type,
        note_number=note.note_number,
        total_amount=str(note.total_amount),
        **extra
    )
