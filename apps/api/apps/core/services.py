"""
Core services - document numbering.
"""
from django.db import IntegrityError, transaction

from .models import DocumentSequence

NUMBER_WIDTH = 6


@transaction.atomic
def next_document_number(organization, prefix: str) -> str:
    """
    Allocate the next document number for an organization, e.g. ``CN-000042``.

    Uses a locked counter row, never MAX()+1 over the documents table.
    The number is only consumed if the surrounding transaction commits.
    Uniqueness of the final document number is still enforced by the
    owning table's constraint.
    """
    sequence = (
        DocumentSequence.objects
        .select_for_update()
        .filter(organization=organization, prefix=prefix)
        .first()
    )

    if sequence is None:
        try:
            # Savepoint: a concurrent creator may win the insert race
            with transaction.atomic():
                sequence = DocumentSequence.objects.create(
                    organization=organization,
                    prefix=prefix,
                )
        except IntegrityError:
            sequence = DocumentSequence.objects.select_for_update().get(
                organization=organization,
                prefix=prefix,
            )

    sequence.current_value += 1
    sequence.save(update_fields=['current_value', 'updated_at'])

    return f'{prefix}-{sequence.current_value:0{NUMBER_WIDTH}d}'
