"""
Room repository - Data access layer for Room domain.
"""
from typing import Optional, List

from core.constants import TenantStatus
from core.repositories import BaseRepository
from .models import Room


class RoomRepository(BaseRepository[Room]):
    """Repository for Room model"""

    def get_with_pricing(self, room_id: int) -> Optional[Room]:
        """Room with everything the price calculator reads"""
        return (
            self.get_queryset()
            .select_related('dormitory', 'room_type')
            .prefetch_related('services')
            .filter(id=room_id)
            .first()
        )

    def active_tenants(self, room: Room) -> List:
        """Active tenants referencing the room, read fresh from the database"""
        from tenants.models import Tenant
        return list(Tenant.objects.filter(room_id=room.id, status=TenantStatus.ACTIVE))
