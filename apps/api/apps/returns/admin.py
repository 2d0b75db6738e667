from django.contrib import admin
from .models import Return, ReturnLine


class ReturnLineInline(admin.TabularInline):
    """
    Inline admin for return lines.

    Lines are editable only while the return is pending.
    """
    model = ReturnLine
    extra = 0
    fields = ['position', 'product', 'product_name', 'quantity', 'unit_price', 'discount', 'tax_rate', 'condition', 'line_total']
    readonly_fields = ['product_name', 'line_total']

    def has_add_permission(self, request, obj=None):
        if obj and not obj.is_pending:
            return False
        return super().has_add_permission(request, obj)

    def has_change_permission(self, request, obj=None):
        if obj and not obj.is_pending:
            return False
        return super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        if obj and not obj.is_pending:
            return False
        return super().has_delete_permission(request, obj)


@admin.register(Return)
class ReturnAdmin(admin.ModelAdmin):
    """
    Returns are approved and rejected through the API so the ledger and
    the note are written in the same transaction; status is read-only here.
    """
    list_display = ['return_number', 'kind', 'status', 'counterparty', 'total', 'refund_amount', 'created_at']
    list_filter = ['kind', 'status', 'refund_type', 'organization']
    search_fields = ['return_number', 'counterparty__name']
    readonly_fields = [
        'id', 'status', 'amount', 'discount', 'tax', 'total', 'refund_amount',
        'created_at', 'updated_at', 'decided_at', 'created_by', 'decided_by',
    ]
    inlines = [ReturnLineInline]

    def has_delete_permission(self, request, obj=None):
        if obj and not obj.is_pending:
            return False
        return super().has_delete_permission(request, obj)
