"""
Uniform API envelopes: {"success": bool, "data": ..., "error": ...}
"""
import logging

from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationException

logger = logging.getLogger(__name__)


def success_response(data=None, status_code=status.HTTP_200_OK):
    return Response({'success': True, 'data': data}, status=status_code)


def error_response(message, code=None, details=None, status_code=status.HTTP_400_BAD_REQUEST):
    payload = {'success': False, 'error': message, 'code': code}
    if details:
        payload['details'] = details
    return Response(payload, status=status_code)


def result_response(result, serialize=None, status_code=status.HTTP_200_OK):
    """
    Render a ServiceResult; ``serialize`` turns successful data into
    primitives (usually a serializer's ``.data``).
    """
    if not result.success:
        return error_response(result.error, result.code, result.details, result.status_code)
    data = serialize(result.data) if serialize else result.data
    return success_response(data, status_code)


def envelope_exception_handler(exc, context):
    """
    DRF exception handler: domain exceptions and DRF's own errors leave the
    API in the same envelope as successful responses.
    """
    if isinstance(exc, BaseApplicationException):
        return error_response(exc.message, exc.code, exc.details, exc.status_code)
    if isinstance(exc, Http404):
        exc = exceptions.NotFound()

    response = exception_handler(exc, context)
    if response is None:
        view = context.get('view')
        logger.error(f"Unhandled error in {view.__class__.__name__ if view else 'API'}: {exc}", exc_info=True)
        return error_response(
            "An unexpected error occurred", "INTERNAL_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    detail = response.data
    message = detail.get('detail') if isinstance(detail, dict) and 'detail' in detail else "Invalid request"
    code = getattr(exc, 'default_code', 'error')
    response.data = {'success': False, 'error': str(message), 'code': str(code).upper()}
    if not (isinstance(detail, dict) and set(detail) == {'detail'}):
        response.data['details'] = detail
    return response
