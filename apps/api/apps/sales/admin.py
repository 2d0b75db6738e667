from django.contrib import admin
from .models import Sale, SaleLine


class SaleLineInline(admin.TabularInline):
    """
    Inline admin for sale lines.

    returned_quantity is maintained by return approval only.
    """
    model = SaleLine
    extra = 0
    fields = ['product', 'product_name', 'quantity', 'unit_price', 'discount', 'tax_rate', 'returned_quantity']
    readonly_fields = ['returned_quantity']


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ['sale_number', 'customer', 'organization', 'status', 'total', 'created_at']
    list_filter = ['status', 'organization', 'created_at']
    search_fields = ['sale_number', 'customer__name']
    readonly_fields = ['id', 'created_at', 'updated_at']
    inlines = [SaleLineInline]
