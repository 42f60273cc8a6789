from django.contrib import admin
from .models import Tenant, SpecialItem


class SpecialItemInline(admin.TabularInline):
    model = SpecialItem
    extra = 0


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ['name', 'phone', 'room', 'status', 'outstanding_balance', 'move_in_date']
    list_filter = ['dormitory', 'status']
    search_fields = ['name', 'phone', 'email', 'room__number']
    inlines = [SpecialItemInline]
    readonly_fields = ['outstanding_balance', 'has_meter_reading', 'last_meter_reading_date',
                       'electricity_previous_reading', 'electricity_current_reading', 'electricity_units_used']

    fieldsets = (
        ('Basic Information', {
            'fields': ('dormitory', 'room', 'name', 'phone', 'email', 'line_id')
        }),
        ('Occupancy', {
            'fields': ('status', 'number_of_residents', 'move_in_date', 'move_out_date')
        }),
        ('Billing', {
            'fields': ('outstanding_balance', 'has_meter_reading', 'last_meter_reading_date',
                       'electricity_previous_reading', 'electricity_current_reading',
                       'electricity_units_used'),
            'classes': ('collapse',)
        }),
    )
