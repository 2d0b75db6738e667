"""
Finance services - issuing and settling credit/debit notes.
"""
from django.db import transaction
from django.utils import timezone

from apps.core.observability import metrics, get_sanitized_logger
from apps.core.observability.events import log_note_event
from apps.core.services import next_document_number
from apps.returns.exceptions import InvalidTransitionError, NotFoundError

from .models import FinancialNote, NoteTypeChoices, NoteStatusChoices

logger = get_sanitized_logger(__name__)

NOTE_NUMBER_PREFIXES = {
    NoteTypeChoices.SALES.value: 'CN',
    NoteTypeChoices.PURCHASE.value: 'DN',
}

DEFAULT_PARTIAL_REASON = 'Per agreement'
DEFAULT_PURCHASE_REASON = 'Items returned to supplier'


def note_type_for(kind) -> str:
    """sale returns get credit notes, purchase returns get debit notes."""
    return NoteTypeChoices.SALES.value if kind == 'sale' else NoteTypeChoices.PURCHASE.value


def note_reason_for(ret) -> str:
    """Human-readable reason printed on the note."""
    if ret.kind == 'purchase':
        return ret.reason or DEFAULT_PURCHASE_REASON

    detail = ret.refund_reason or DEFAULT_PARTIAL_REASON
    if ret.refund_type == 'partial':
        return f'Partial refund: {detail}'
    if ret.refund_type == 'none':
        return f'No refund: {detail}'
    return 'Full refund for returned items'


def issue_note(ret, totals, counterparty=None, created_by=None) -> FinancialNote:
    """
    Issue the one credit/debit note for an approved return.

    Must run inside the approval transaction, after the return row has
    been locked and found pending; that lock is what prevents a second
    note for the same return. The one-to-one constraint on
    source_return backs it up at the database.

    Args:
        ret: Return being approved (locked)
        totals: ReturnTotals from the refund calculator
        counterparty: Contact (customer or supplier), may be None for walk-in sales
        created_by: approving user

    Returns:
        FinancialNote in status issued
    """
    note_type = note_type_for(ret.kind)
    note_number = next_document_number(ret.organization, NOTE_NUMBER_PREFIXES[note_type])

    note = FinancialNote(
        organization=ret.organization,
        source_return=ret,
        counterparty=counterparty,
        note_number=note_number,
        note_type=note_type,
        status=NoteStatusChoices.ISSUED,
        amount=totals.net_amount,
        tax_amount=totals.tax_total,
        total_amount=totals.total,
        refund_amount=totals.refund_amount,
        currency=ret.currency,
        reason=note_reason_for(ret),
        notes=ret.notes or '',
        issued_date=timezone.localdate(),
        created_by=created_by,
    )
    note.save()

    transaction.on_commit(lambda: _report_note(note, 'issued'))

    return note


def _report_note(note, action):
    metrics.financial_notes_total.labels(note_type=note.note_type, action=action).inc()
    log_note_event(note, action)


def _get_locked_note(note_id, organization):
    queryset = FinancialNote.objects.select_for_update()
    if organization is not None:
        queryset = queryset.filter(organization=organization)
    try:
        return queryset.get(pk=note_id)
    except FinancialNote.DoesNotExist:
        raise NotFoundError('Financial note not found.')


def _transition_note(note_id, organization, target_status):
    note = _get_locked_note(note_id, organization)

    if note.status != NoteStatusChoices.ISSUED:
        logger.warning(
            'Financial note transition refused',
            extra={
                'event': 'financial_note_invalid_transition',
                'note_id': str(note.id),
                'current_status': note.status,
                'target_status': target_status,
            }
        )
        raise InvalidTransitionError(note.status, target_status)

    note.status = target_status
    update_fields = ['status', 'updated_at']
    if target_status == NoteStatusChoices.APPLIED:
        note.applied_date = timezone.localdate()
        update_fields.append('applied_date')
    else:
        note.cancelled_at = timezone.now()
        update_fields.append('cancelled_at')
    note.save(update_fields=update_fields)

    action = 'applied' if target_status == NoteStatusChoices.APPLIED else 'cancelled'
    transaction.on_commit(lambda: _report_note(note, action))

    return note


@transaction.atomic
def apply_note(note_id, organization=None) -> FinancialNote:
    """
    issued -> applied (stamps applied_date).

    Raises:
        NotFoundError: note not in the organization
        InvalidTransitionError: note is not issued
    """
    return _transition_note(note_id, organization, NoteStatusChoices.APPLIED)


@transaction.atomic
def cancel_note(note_id, organization=None) -> FinancialNote:
    """
    issued -> cancelled.

    Raises:
        NotFoundError: note not in the organization
        InvalidTransitionError: note is not issued
    """
    return _transition_note(note_id, organization, NoteStatusChoices.CANCELLED)
