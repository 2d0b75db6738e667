"""Returns serializers."""
from rest_framework import serializers

from apps.finance.models import FinancialNote

from .models import (
    ItemConditionChoices,
    RefundTypeChoices,
    Return,
    ReturnKindChoices,
    ReturnLine,
)


class ReturnLineInputSerializer(serializers.Serializer):
    """
    One requested line.

    unit_price and tax_rate default to the originating line's values.
    """
    product = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    condition = serializers.ChoiceField(choices=ItemConditionChoices.choices)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False)


class ReturnCreateSerializer(serializers.Serializer):
    """Payload for POST /returns/."""
    kind = serializers.ChoiceField(choices=ReturnKindChoices.choices)
    sale = serializers.UUIDField(required=False)
    purchase_order = serializers.UUIDField(required=False)
    counterparty = serializers.UUIDField(required=False)
    lines = ReturnLineInputSerializer(many=True)

    refund_type = serializers.ChoiceField(choices=RefundTypeChoices.choices, required=False)
    reason = serializers.CharField(required=False, allow_blank=True)
    refund_reason = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    return_number = serializers.CharField(required=False, max_length=50)
    return_date = serializers.DateField(required=False)
    currency = serializers.CharField(required=False, min_length=3, max_length=3)
    idempotency_key = serializers.CharField(required=False, max_length=100)

    def validate_lines(self, lines):
        if not lines:
            raise serializers.ValidationError('A return must have at least one line')
        return lines

    def validate(self, attrs):
        kind = attrs['kind']

        if kind == ReturnKindChoices.SALE:
            if not attrs.get('sale'):
                raise serializers.ValidationError({'sale': 'Sale returns require a sale'})
            if attrs.get('purchase_order'):
                raise serializers.ValidationError({'purchase_order': 'Sale returns cannot reference a purchase order'})
        else:
            if not attrs.get('purchase_order'):
                raise serializers.ValidationError({'purchase_order': 'Purchase returns require a purchase order'})
            if attrs.get('sale'):
                raise serializers.ValidationError({'sale': 'Purchase returns cannot reference a sale'})
            if attrs.get('refund_type'):
                raise serializers.ValidationError({'refund_type': 'Purchase returns have no refund type'})

        return attrs

    def to_service_kwargs(self):
        """Map validated data onto create_return() arguments."""
        data = dict(self.validated_data)
        kind = data.pop('kind')
        sale_id = data.pop('sale', None)
        purchase_order_id = data.pop('purchase_order', None)
        originating_id = sale_id if kind == ReturnKindChoices.SALE else purchase_order_id

        lines = []
        for item in data.pop('lines'):
            line = dict(item)
            line['product_id'] = line.pop('product')
            lines.append(line)

        return dict(
            kind=kind,
            originating_id=originating_id,
            lines=lines,
            counterparty_id=data.pop('counterparty', None),
            **data
        )


class ReturnLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = ReturnLine
        fields = [
            'id', 'position', 'product', 'product_name', 'product_sku',
            'quantity', 'unit_price', 'discount', 'tax_rate',
            'tax_amount', 'line_total', 'condition',
        ]
        read_only_fields = fields


class FinancialNoteSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = FinancialNote
        fields = ['id', 'note_number', 'note_type', 'status', 'total_amount', 'refund_amount']
        read_only_fields = fields


class ReturnSerializer(serializers.ModelSerializer):
    """Read serializer for Return with lines and the issued note."""
    lines = ReturnLineSerializer(many=True, read_only=True)
    financial_note = serializers.SerializerMethodField()

    class Meta:
        model = Return
        fields = [
            'id', 'return_number', 'kind', 'status',
            'sale', 'purchase_order', 'counterparty',
            'refund_type', 'amount', 'discount', 'tax', 'total', 'refund_amount', 'currency',
            'return_date', 'reason', 'refund_reason', 'notes', 'rejection_reason',
            'idempotency_key', 'created_at', 'updated_at', 'decided_at',
            'created_by', 'decided_by', 'lines', 'financial_note',
        ]
        read_only_fields = fields

    def get_financial_note(self, obj):
        note = FinancialNote.objects.filter(source_return=obj).first()
        if note is None:
            return None
        return FinancialNoteSummarySerializer(note).data


class ReturnApproveSerializer(serializers.Serializer):
    damaged_stock_policy = serializers.ChoiceField(
        choices=[('restock', 'Restock'), ('defective', 'Defective')],
        required=False
    )


class ReturnRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')
