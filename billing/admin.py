from django.contrib import admin

from .models import Bill, Collection


class CollectionInline(admin.TabularInline):
    model  = Collection
    extra  = 0
    readonly_fields = [
        'amount_collected', 'payment_mode', 'payment_details',
        'collected_by', 'collected_on', 'due_after', 'remarks',
    ]
    fields = readonly_fields

    def has_add_permission(self, request, obj=None):
        return False   # collections are recorded through the API

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = [
        'bill_number', 'retailer_name', 'bill_date', 'due_date',
        'amount', 'due_amount', 'status', 'assigned_to_name', 'collection_day'
    ]
    list_filter   = ['status', 'collection_day', 'bill_date']
    search_fields = ['bill_number', 'retailer_name', 'assigned_to_name']
    readonly_fields = [
        'due_amount', 'prior_paid', 'status', 'payment_date', 'payment_method',
        'assigned_to_name', 'assigned_date', 'history',
        'created_by', 'created_at', 'updated_at'
    ]
    inlines        = [CollectionInline]
    ordering       = ['due_date', 'bill_number']
    date_hierarchy = 'bill_date'
    list_per_page  = 50

    fieldsets = (
        ('Bill Details', {
            'fields': ('bill_number', 'retailer_name', 'bill_date', 'due_date', 'collection_day')
        }),
        ('Amounts', {
            'fields': ('amount', 'prior_paid', 'due_amount', 'status')
        }),
        ('Assignment', {
            'fields': ('assigned_to', 'assigned_to_name', 'assigned_date')
        }),
        ('Payment', {
            'fields': ('payment_date', 'payment_method')
        }),
        ('History', {
            'fields': ('history',),
            'classes': ('collapse',)
        }),
        ('Audit', {
            'fields': ('created_by', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def get_readonly_fields(self, request, obj=None):
        # financial fields move only through collections
        return self.readonly_fields + ['amount']

    def has_add_permission(self, request):
        return False


@admin.register(Collection)
class CollectionAdmin(admin.ModelAdmin):
    list_display  = [
        'bill', 'amount_collected', 'payment_mode',
        'collected_by', 'collected_on', 'due_after',
    ]
    list_filter   = ['payment_mode', 'collected_on']
    search_fields = ['bill__bill_number', 'bill__retailer_name', 'remarks']
    readonly_fields = [
        'bill', 'amount_collected', 'payment_mode', 'payment_details',
        'collected_by', 'remarks', 'collected_on', 'due_after', 'created_at',
    ]
    ordering = ['-collected_on']

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False    # immutable
