"""
Tenant service - move-in, move-out and special charges.
Every change that touches both a tenant and a room is a single atomic write.
"""
from decimal import Decimal
from typing import Optional, List, Dict, Any

from django.db import transaction
from django.utils import timezone

from core.constants import TenantStatus
from core.exceptions import OutstandingBalance, ValidationError, RoomStateConflict
from core.repositories import BaseRepository
from core.services import BaseService
from core.validators import to_money
from rooms.models import Room
from rooms.repositories import RoomRepository
from rooms.services import RoomStatusCoordinator
from .models import Tenant, SpecialItem


class TenantService(BaseService):
    """Service for tenant occupancy business logic"""

    def __init__(self, coordinator: RoomStatusCoordinator = None):
        super().__init__()
        self.tenant_repo = BaseRepository(Tenant)
        self.room_repo = RoomRepository(Room)
        self.special_item_repo = BaseRepository(SpecialItem)
        self.coordinator = coordinator or RoomStatusCoordinator()

    def assign_tenant(self, room: Room, name: str, number_of_residents: int = 1,
                      special_items: Optional[List[Dict[str, Any]]] = None, **fields) -> Tenant:
        """
        Move a new tenant into ``room``.

        Raises:
            RoomStateConflict: room is not available (or abnormal)
            ValidationError: invalid resident count
        """
        if number_of_residents < 1:
            raise ValidationError(
                message="A tenant needs at least one resident",
                code="INVALID_RESIDENTS"
            )

        with transaction.atomic():
            locked = self.room_repo.lock(room.id)
            if self.room_repo.active_tenants(locked):
                raise RoomStateConflict(
                    message=f"Room {locked.number} already has an active tenant",
                    details={"room_id": locked.id}
                )
            tenant = self.tenant_repo.create(
                dormitory_id=locked.dormitory_id,
                room=locked,
                name=name,
                number_of_residents=number_of_residents,
                status=TenantStatus.ACTIVE,
                move_in_date=fields.pop('move_in_date', None) or timezone.localdate(),
                **fields
            )
            for item in special_items or []:
                self.add_special_item(tenant, **item)
            self.coordinator.tenant_assigned(locked, tenant)

        self.log_info(f"Tenant {tenant.name} moved into room {locked.number}", tenant_id=tenant.id)
        return tenant

    def move_out(self, tenant: Tenant, force: bool = False, move_out_date=None) -> Tenant:
        """
        Move a tenant out and free the room.

        Settlement is the caller's responsibility; without ``force`` a tenant
        with an outstanding balance is refused.
        """
        from billing.balances import OutstandingBalanceAggregator

        with transaction.atomic():
            tenant = self.tenant_repo.lock(tenant.id)
            if tenant.status == TenantStatus.MOVED_OUT:
                return tenant

            balance = OutstandingBalanceAggregator().recompute(tenant)
            if balance > 0 and not force:
                raise OutstandingBalance(
                    message=f"{tenant.name} still owes {balance}",
                    details={"tenant_id": tenant.id, "outstanding_balance": str(balance)}
                )

            room = tenant.room
            self.tenant_repo.update(
                tenant,
                status=TenantStatus.MOVED_OUT,
                move_out_date=move_out_date or timezone.localdate(),
                has_meter_reading=False,
            )
            if room is not None:
                self.coordinator.tenant_removed(room)

        self.log_info(f"Tenant {tenant.name} moved out", tenant_id=tenant.id, forced=force)
        return tenant

    def add_special_item(self, tenant: Tenant, name: str, amount, duration: int = 0,
                         remaining_billing_cycles: Optional[int] = None) -> SpecialItem:
        """Attach a recurring (duration 0) or fixed-duration extra charge"""
        if duration < 0:
            raise ValidationError(message="Duration cannot be negative", code="INVALID_DURATION")
        if remaining_billing_cycles is None:
            remaining_billing_cycles = duration
        return self.special_item_repo.create(
            tenant=tenant,
            name=name,
            amount=to_money(amount),
            duration=duration,
            remaining_billing_cycles=remaining_billing_cycles,
        )

    def record_usage_snapshot(self, tenant: Tenant, previous: Decimal, current: Decimal,
                              units_used: Decimal, reading_date) -> Tenant:
        """Store the latest electric reading on the tenant for pricing"""
        return self.tenant_repo.update(
            tenant,
            electricity_previous_reading=previous,
            electricity_current_reading=current,
            electricity_units_used=units_used,
            has_meter_reading=True,
            last_meter_reading_date=reading_date,
        )
