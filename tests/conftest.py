"""Shared fixtures: one dormitory with a priced room and a tenant."""
from datetime import date
from decimal import Decimal
from unittest.mock import Mock

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from billing.payments import PaymentProcessor
from billing.services import BillLifecycleManager
from core.dto import BillingPeriod
from dormitories.models import Dormitory, RoomType, FloorRate, ServiceItem
from integrations.notifications import NotificationDispatcher
from integrations.storage import EvidenceStorage
from meters.services import MeterReadingStore
from rooms.models import Room
from rooms.services import RoomStatusCoordinator
from tenants.services import TenantService

MAY_2024 = BillingPeriod(month=5, year=2024)
BILL_DATE = date(2024, 6, 1)


@pytest.fixture
def dormitory(db):
    return Dormitory.objects.create(
        name="Sunrise Dorm",
        address="12 Ratchada Rd",
        water_rate_per_person=Decimal('50'),
        electric_unit_rate=Decimal('7'),
        grace_period_days=7,
        late_fee_rate=Decimal('20'),
    )


@pytest.fixture
def standard_type(dormitory):
    return RoomType.objects.create(dormitory=dormitory, name="Standard", base_price=Decimal('3000'))


@pytest.fixture
def parking(dormitory):
    return ServiceItem.objects.create(dormitory=dormitory, name="Parking", amount=Decimal('100'))


@pytest.fixture
def room(dormitory, standard_type, parking):
    FloorRate.objects.create(dormitory=dormitory, floor=3, amount=Decimal('-200'))
    room = Room.objects.create(dormitory=dormitory, number="301", floor=3, room_type=standard_type)
    room.services.add(parking)
    return room


@pytest.fixture
def empty_room(dormitory, standard_type):
    return Room.objects.create(dormitory=dormitory, number="302", floor=3, room_type=standard_type)


@pytest.fixture
def notifier_backend():
    return Mock()


@pytest.fixture
def notifier(notifier_backend):
    return NotificationDispatcher(backend=notifier_backend)


@pytest.fixture
def coordinator():
    return RoomStatusCoordinator()


@pytest.fixture
def meter_store(coordinator, notifier):
    return MeterReadingStore(coordinator=coordinator, notifier=notifier)


@pytest.fixture
def manager(coordinator, meter_store, notifier):
    return BillLifecycleManager(coordinator=coordinator, meter_store=meter_store, notifier=notifier)


@pytest.fixture
def storage():
    return Mock(spec=EvidenceStorage)


@pytest.fixture
def processor(storage, coordinator, notifier):
    return PaymentProcessor(storage=storage, coordinator=coordinator, notifier=notifier)


@pytest.fixture
def tenant(room, coordinator):
    return TenantService(coordinator=coordinator).assign_tenant(
        room, "Somchai", number_of_residents=2, line_id="U123"
    )


@pytest.fixture
def metered_tenant(room, tenant, meter_store):
    """Tenant with 40 electric units recorded at the end of May"""
    meter_store.record(room, 'electric', '40', reading_date=date(2024, 5, 28))
    tenant.refresh_from_db()
    return tenant


@pytest.fixture
def bill(room, metered_tenant, manager):
    """May 2024 bill: 3000 - 200 + 100 + 100 water + 280 electricity"""
    return manager.create(room, MAY_2024, bill_date=BILL_DATE)


@pytest.fixture
def staff_user(db):
    return get_user_model().objects.create_user(username="manager", password="secret", is_staff=True)


@pytest.fixture
def api_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client
