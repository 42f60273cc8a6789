"""
API URLs for the dormitory billing service
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from billing.views import BillViewSet, PaymentViewSet
from dormitories.views import DormitoryViewSet, RoomTypeViewSet, FloorRateViewSet, ServiceItemViewSet
from meters.views import MeterReadingViewSet
from rooms.views import RoomViewSet
from tenants.views import TenantViewSet

# Create router
router = DefaultRouter()
router.register(r'dormitories', DormitoryViewSet, basename='dormitory')
router.register(r'room-types', RoomTypeViewSet, basename='roomtype')
router.register(r'floor-rates', FloorRateViewSet, basename='floorrate')
router.register(r'service-items', ServiceItemViewSet, basename='serviceitem')
router.register(r'rooms', RoomViewSet, basename='room')
router.register(r'tenants', TenantViewSet, basename='tenant')
router.register(r'meter-readings', MeterReadingViewSet, basename='meterreading')
router.register(r'bills', BillViewSet, basename='bill')
router.register(r'payments', PaymentViewSet, basename='payment')

urlpatterns = [
    # JWT Authentication
    path('auth/login/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # API routes
    path('', include(router.urls)),
]
