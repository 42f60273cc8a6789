from django.contrib import admin
from .models import Bill, BillItem, Payment


class BillItemInline(admin.TabularInline):
    model = BillItem
    extra = 0
    readonly_fields = ['item_type', 'name', 'amount', 'unit_price', 'quantity']
    can_delete = False


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    readonly_fields = ['amount', 'method', 'status', 'reference_code', 'evidence_url', 'paid_at']
    can_delete = False


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = ['room_number', 'tenant', 'month', 'year', 'total_amount', 'paid_amount',
                    'remaining_amount', 'status', 'due_date']
    list_filter = ['status', 'dormitory', 'year', 'month']
    search_fields = ['room_number', 'tenant__name']
    date_hierarchy = 'due_date'
    inlines = [BillItemInline, PaymentInline]
    # Amounts and status are owned by the billing services
    readonly_fields = ['total_amount', 'paid_amount', 'remaining_amount', 'status', 'late_fee',
                       'forced_duplicate', 'special_item_ids']

    fieldsets = (
        ('Bill', {
            'fields': ('dormitory', 'room', 'room_number', 'tenant', 'month', 'year')
        }),
        ('Dates', {
            'fields': ('bill_date', 'due_date')
        }),
        ('Amounts', {
            'fields': ('total_amount', 'paid_amount', 'remaining_amount', 'status', 'late_fee')
        }),
        ('Notifications', {
            'fields': ('notified_initial', 'notified_reminder', 'notified_overdue'),
            'classes': ('collapse',)
        }),
        ('Internal', {
            'fields': ('forced_duplicate', 'special_item_ids'),
            'classes': ('collapse',)
        }),
    )

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('tenant', 'room', 'dormitory')


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['bill', 'amount', 'method', 'status', 'reference_code', 'paid_at']
    list_filter = ['method', 'status']
    search_fields = ['reference_code', 'bill__room_number', 'tenant__name']
    readonly_fields = ['bill', 'tenant', 'amount', 'method', 'status', 'paid_at']
