from django.contrib import admin
from .models import Room


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ['number', 'dormitory', 'floor', 'room_type', 'status', 'current_tenant']
    list_filter = ['dormitory', 'status', 'floor']
    search_fields = ['number', 'dormitory__name']
    filter_horizontal = ['services']
    readonly_fields = ['status', 'current_tenant']

    fieldsets = (
        ('Room', {
            'fields': ('dormitory', 'number', 'floor', 'room_type', 'services')
        }),
        ('Meters', {
            'fields': ('initial_meter_reading', 'initial_water_reading')
        }),
        ('Occupancy', {
            'fields': ('status', 'current_tenant')
        }),
    )

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('dormitory', 'room_type', 'current_tenant')
