from django.contrib import admin
from .models import MeterReading


@admin.register(MeterReading)
class MeterReadingAdmin(admin.ModelAdmin):
    list_display = ['room', 'utility_type', 'previous_reading', 'current_reading', 'units_used',
                    'reading_date', 'is_billed']
    list_filter = ['utility_type', 'is_billed', 'dormitory']
    search_fields = ['room__number']
    date_hierarchy = 'reading_date'
    readonly_fields = ['previous_reading', 'units_used', 'is_billed', 'bill', 'created_at']

    def has_delete_permission(self, request, obj=None):
        return False
