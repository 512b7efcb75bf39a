from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display  = ['code', 'name', 'company', 'mrp', 'price', 'weight', 'scheme', 'stock']
    list_filter   = ['company']
    search_fields = ['code', 'name', 'company']
    ordering      = ['name']
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        ('Product', {
            'fields': ('code', 'name', 'company')
        }),
        ('Pricing', {
            'fields': ('mrp', 'price', 'scheme')
        }),
        ('Stock', {
            'fields': ('weight', 'stock')
        }),
        ('Audit', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )
