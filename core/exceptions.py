import logging

from django.db import IntegrityError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ResourceNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found.'
    default_code = 'not_found'


class AccessDenied(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have access to this resource.'
    default_code = 'forbidden'


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Resource already exists.'
    default_code = 'conflict'


class DependentResourcesExist(Conflict):
    default_detail = 'Resource still has dependent records.'
    default_code = 'dependents_exist'

    def __init__(self, detail=None, counts=None):
        super().__init__(detail)
        self.counts = counts or {}


class MaxRetriesExceeded(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Service temporarily unavailable, please retry later.'
    default_code = 'max_retries_exceeded'


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return 'Invalid input.'
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else 'Invalid input.'
    return str(detail)


def api_exception_handler(exc, context):
    """
    Render every API error as {"success": false, "message": ..., "status_code": ...}.
    Unique constraint violations that slip past the service pre-checks become 409s.
    """
    if isinstance(exc, IntegrityError):
        logger.warning(f"Integrity error converted to conflict: {exc}")
        exc = Conflict()

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, ValidationError):
        message = _first_message(exc.detail)
        body = {
            'success': False,
            'message': message,
            'status_code': response.status_code,
            'errors': exc.detail,
        }
    else:
        detail = getattr(exc, 'detail', response.data)
        body = {
            'success': False,
            'message': _first_message(detail),
            'status_code': response.status_code,
        }

    response.data = body
    return response
