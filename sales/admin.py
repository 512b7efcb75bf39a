from django.contrib import admin

from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = [
        'product', 'code', 'name', 'price', 'weight', 'scheme', 'other_scheme',
        'quantity', 'net_price', 'total_litres', 'total_sale', 'remarks'
    ]
    fields = readonly_fields

    def has_add_permission(self, request, obj=None):
        return False   # lines are booked with the order through the API


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display  = [
        'short_id', 'retailer_name', 'total_order_value', 'total_litres',
        'status', 'created_by_name', 'created_at'
    ]
    list_filter   = ['status', 'created_at']
    search_fields = ['retailer_name', 'created_by_name', 'items__code']
    readonly_fields = [
        'retailer', 'retailer_name', 'total_order_value', 'total_litres',
        'status', 'created_by', 'created_by_name', 'created_at', 'updated_at'
    ]
    inlines        = [OrderItemInline]
    date_hierarchy = 'created_at'
    list_per_page  = 50

    fieldsets = (
        ('Order', {
            'fields': ('retailer', 'retailer_name', 'status')
        }),
        ('Totals', {
            'fields': ('total_order_value', 'total_litres')
        }),
        ('Audit', {
            'fields': ('created_by', 'created_by_name', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def has_add_permission(self, request):
        return False
