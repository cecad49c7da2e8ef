"""
Error taxonomy and the single boundary that renders errors as JSON.

Every failure leaves the API in the same envelope:

    {"success": false, "error": true, "status": <code>, "message": "<text>"}

Services raise the domain errors below; DRF raises its own exceptions for
authentication, permissions and serializer validation. The exception handler
configured in REST_FRAMEWORK['EXCEPTION_HANDLER'] maps both families.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Internal Server Error'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(ServiceError):
    """Missing or invalid input."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Invalid request'


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found'


class ConflictError(ServiceError):
    """A unique field is already taken."""
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Conflict'


def flatten_error_detail(detail, prefix='') -> str:
    """
    Collapse DRF's nested error detail into one readable message.

    Only the first error is reported, prefixed with the path of the field
    that caused it (e.g. ``orders.0.store: This field is required.``).
    """
    if isinstance(detail, dict):
        for key, value in detail.items():
            if key == 'non_field_errors':
                return flatten_error_detail(value, prefix)
            path = f"{prefix}.{key}" if prefix else str(key)
            return flatten_error_detail(value, path)
        return prefix or 'Invalid request'
    if isinstance(detail, list):
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)) and value:
                path = f"{prefix}.{index}" if prefix else str(index)
                return flatten_error_detail(value, path)
            if not isinstance(value, (dict, list)):
                return flatten_error_detail(value, prefix)
        return prefix or 'Invalid request'
    return f"{prefix}: {detail}" if prefix else str(detail)


def error_response(status_code: int, message: str, headers=None) -> Response:
    return Response(
        {'success': False, 'error': True, 'status': status_code, 'message': message},
        status=status_code,
        headers=headers,
    )


def envelope_exception_handler(exc, context):
    """DRF exception handler producing the JSON error envelope."""
    if isinstance(exc, ServiceError):
        if exc.status_code >= 500:
            logger.error(f"Service error: {exc.message}")
        return error_response(exc.status_code, exc.message)

    response = drf_exception_handler(exc, context)
    if response is None:
        view = context.get('view')
        logger.exception(f"Unhandled error in {view.__class__.__name__ if view else 'request'}: {exc}")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, 'Internal Server Error')

    headers = {
        name: value for name, value in response.items()
        if name in ('WWW-Authenticate', 'Retry-After')
    }
    data = response.data
    if isinstance(data, dict) and 'detail' in data:
        data = data['detail']
    return error_response(response.status_code, flatten_error_detail(data), headers=headers or None)
