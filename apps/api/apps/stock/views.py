"""Stock views - inventory ledger (read-only)."""
from rest_framework import viewsets

from apps.authz.permissions import IsReturnsOperatorOrAdmin
from apps.core.views import OrganizationScopedMixin

from .models import InventoryMovement
from .serializers import InventoryMovementSerializer


class InventoryMovementViewSet(OrganizationScopedMixin, viewsets.ReadOnlyModelViewSet):
    """
    Ledger rows are written by return approval only; the API never
    creates, edits or deletes them.

    Query params:
    - product: product id
    - movement_type: sale_return|sale_return_defective|purchase_return
    - reference_return: return id
    """

    queryset = InventoryMovement.objects.select_related('product', 'reference_return').all()
    serializer_class = InventoryMovementSerializer
    permission_classes = [IsReturnsOperatorOrAdmin]
    search_fields = ['product__sku', 'product__name', 'reference_return__return_number']
    ordering = ['-created_at']

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params

        for field in ('product', 'movement_type', 'reference_return'):
            value = params.get(field)
            if value:
                queryset = queryset.filter(**{field: value})

        return queryset
