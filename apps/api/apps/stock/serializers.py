"""Stock serializers - read-only inventory ledger."""
from rest_framework import serializers
from .models import InventoryMovement


class InventoryMovementSerializer(serializers.ModelSerializer):
    """Serializer for InventoryMovement (read-only)."""

    product_sku = serializers.CharField(source='product.sku', read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)
    return_number = serializers.CharField(
        source='reference_return.return_number',
        read_only=True,
        default=None
    )
    was_clamped = serializers.BooleanField(read_only=True)

    class Meta:
        model = InventoryMovement
        fields = [
            'id', 'product', 'product_sku', 'product_name',
            'movement_type', 'quantity', 'applied_quantity', 'balance_after',
            'was_clamped', 'reference_return', 'return_number',
            'reference_return_line', 'note', 'created_at', 'created_by',
        ]
        read_only_fields = fields
