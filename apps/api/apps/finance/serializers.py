"""Finance serializers."""
from rest_framework import serializers
from .models import FinancialNote


class FinancialNoteSerializer(serializers.ModelSerializer):
    """Read-only: notes are issued by return approval."""

    note_type_display = serializers.CharField(source='get_note_type_display', read_only=True)
    return_number = serializers.CharField(source='source_return.return_number', read_only=True)
    counterparty_name = serializers.CharField(source='counterparty.name', read_only=True, default=None)

    class Meta:
        model = FinancialNote
        fields = [
            'id', 'note_number', 'note_type', 'note_type_display', 'status',
            'source_return', 'return_number', 'counterparty', 'counterparty_name',
            'amount', 'tax_amount', 'total_amount', 'refund_amount', 'currency',
            'reason', 'notes', 'issued_date', 'applied_date', 'cancelled_at',
            'created_at', 'updated_at', 'created_by',
        ]
        read_only_fields = fields
