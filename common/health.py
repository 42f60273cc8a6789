"""
Health check endpoints

- Liveness (is the app running?)
- Readiness (can it reach the database?)
- Deep check (billing backlog and scheduler state)
"""
import time
import logging
from django.http import JsonResponse
from django.db import connection
from django.views.decorators.http import require_GET
from django.views.decorators.csrf import csrf_exempt

logger = logging.getLogger(__name__)


@csrf_exempt
@require_GET
def health_check(request):
    """Basic health check - returns 200 if app is running."""
    return JsonResponse({
        'status': 'healthy',
        'timestamp': time.time(),
    })


def _database_latency_ms():
    start = time.time()
    with connection.cursor() as cursor:
        cursor.execute('SELECT 1')
        cursor.fetchone()
    return round((time.time() - start) * 1000, 2)


@csrf_exempt
@require_GET
def readiness_check(request):
    """Readiness check - verifies the database answers."""
    try:
        latency = _database_latency_ms()
    except Exception as e:
        logger.error(f'Health check - Database error: {e}')
        return JsonResponse({
            'status': 'not_ready',
            'timestamp': time.time(),
            'errors': [f'Database: {e}'],
        }, status=503)

    return JsonResponse({
        'status': 'ready',
        'timestamp': time.time(),
        'checks': {'database': {'status': True, 'latency_ms': latency}},
    })


@csrf_exempt
@require_GET
def deep_health_check(request):
    """
    Deep health check - database plus billing backlog.
    Overdue bills past their sweep point mean the daily sweep is not running.
    """
    from django.utils import timezone
    from billing.models import Bill
    from core.constants import SWEEPABLE_BILL_STATUSES
    from . import scheduler

    errors = []
    checks = {'database': {'status': False, 'latency_ms': None}}
    try:
        checks['database'] = {'status': True, 'latency_ms': _database_latency_ms()}
        checks['billing'] = {
            'unswept_overdue': Bill.objects.filter(
                status__in=SWEEPABLE_BILL_STATUSES, due_date__lt=timezone.localdate()
            ).count(),
            'unsettled': Bill.objects.unsettled().count(),
        }
    except Exception as e:
        errors.append(f'Database: {e}')
        logger.error(f'Deep health check - Database error: {e}')
    checks['scheduler'] = {'running': scheduler.is_running()}

    healthy = checks['database']['status']
    return JsonResponse({
        'status': 'healthy' if healthy else 'unhealthy',
        'timestamp': time.time(),
        'checks': checks,
        'errors': errors or None,
    }, status=200 if healthy else 503)


def get_health_urls():
    """URL patterns for the health endpoints."""
    from django.urls import path

    return [
        path('health/', health_check, name='health_check'),
        path('health/ready/', readiness_check, name='readiness_check'),
        path('health/deep/', deep_health_check, name='deep_health_check'),
    ]
