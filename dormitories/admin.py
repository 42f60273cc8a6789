from django.contrib import admin
from .models import Dormitory, RoomType, FloorRate, ServiceItem


class RoomTypeInline(admin.TabularInline):
    model = RoomType
    extra = 0


class FloorRateInline(admin.TabularInline):
    model = FloorRate
    extra = 0


class ServiceItemInline(admin.TabularInline):
    model = ServiceItem
    extra = 0


@admin.register(Dormitory)
class DormitoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'water_rate_per_person', 'electric_unit_rate', 'grace_period_days', 'late_fee_rate']
    search_fields = ['name', 'address']
    inlines = [RoomTypeInline, FloorRateInline, ServiceItemInline]

    fieldsets = (
        ('Dormitory', {
            'fields': ('name', 'address')
        }),
        ('Utilities', {
            'fields': ('water_rate_per_person', 'electric_unit_rate')
        }),
        ('Billing Cycle', {
            'fields': ('billing_day', 'grace_period_days', 'due_day', 'late_fee_rate')
        }),
        ('Billing Conditions', {
            'fields': ('require_meter_reading', 'reject_zero_usage'),
            'classes': ('collapse',)
        }),
    )
