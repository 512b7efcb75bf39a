from django.contrib import admin

from .models import Retailer


@admin.register(Retailer)
class RetailerAdmin(admin.ModelAdmin):
    list_display  = ['name', 'address1', 'assigned_to', 'day_assigned', 'created_at']
    list_filter   = ['day_assigned', 'assigned_to']
    search_fields = ['name', 'address1', 'address2']
    ordering      = ['name']
    readonly_fields = ['created_by', 'created_at', 'updated_at']
