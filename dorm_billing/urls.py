"""
URL configuration for dorm_billing project.
"""
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

from common.health import get_health_urls

admin.site.site_header = "Dormitory Billing - Admin Panel"
admin.site.site_title = "Dormitory Billing Admin"
admin.site.index_title = "Dormitories, rooms and bills"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('api.urls')),  # API routes
]

# Add health check endpoints (for load balancers, monitoring)
urlpatterns += get_health_urls()

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
