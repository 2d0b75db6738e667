from django.contrib import admin
from .models import PurchaseOrder, PurchaseOrderLine


class PurchaseOrderLineInline(admin.TabularInline):
    model = PurchaseOrderLine
    extra = 0
    readonly_fields = ['returned_quantity']


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ['po_number', 'supplier', 'organization', 'status', 'total', 'created_at']
    list_filter = ['status', 'organization']
    search_fields = ['po_number', 'supplier__name']
    readonly_fields = ['id', 'created_at', 'updated_at']
    inlines = [PurchaseOrderLineInline]
