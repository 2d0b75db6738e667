from django.contrib import admin
from .models import InventoryMovement


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    """Read-only: the ledger is append-only."""
    list_display = ['created_at', 'product', 'movement_type', 'quantity', 'applied_quantity', 'balance_after', 'reference_return']
    list_filter = ['movement_type', 'organization', 'created_at']
    search_fields = ['product__sku', 'product__name', 'reference_return__return_number']
    readonly_fields = [f.name for f in InventoryMovement._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
