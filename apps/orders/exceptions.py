"""
HTTP exceptions for the orders API.

Service failures carry an ``ErrorKind``; ``to_api_exception`` maps it to
one of the APIException subclasses below, and the project-wide exception
handler renders every error in the ``{"success": false, "error": ...}``
envelope.
"""
import structlog
from returns.pipeline import is_successful
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .services.exceptions import ErrorKind, OrderServiceError

logger = structlog.get_logger(__name__)


class OrderRequestInvalid(APIException):
    """Order request rejected by validation or policy."""
    status_code = 400
    default_detail = 'Validation failed.'
    default_code = 'validation_error'


class OrderResourceNotFound(APIException):
    """Order, food item or lounge not found."""
    status_code = 404
    default_detail = 'Order not found.'
    default_code = 'not_found'


class OrderAccessDenied(APIException):
    """User doesn't have rights over the order."""
    status_code = 403
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'authorization_error'


class OrderStateConflict(APIException):
    """Order's current state forbids the action."""
    status_code = 409
    default_detail = 'Order state conflict.'
    default_code = 'conflict'


_EXCEPTIONS_BY_KIND = {
    ErrorKind.VALIDATION: OrderRequestInvalid,
    ErrorKind.NOT_FOUND: OrderResourceNotFound,
    ErrorKind.AUTHORIZATION: OrderAccessDenied,
    ErrorKind.CONFLICT: OrderStateConflict,
}


def to_api_exception(error: OrderServiceError) -> APIException:
    return _EXCEPTIONS_BY_KIND[error.kind](detail=error.message)


def unwrap_or_raise(result):
    """Return the success value of a service Result or raise its API error."""
    if not is_successful(result):
        raise to_api_exception(result.failure())
    return result.unwrap()


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
    if isinstance(detail, list) and detail:
        return _first_message(detail[0])
    return str(detail)


def envelope_exception_handler(exc, context):
    """DRF exception handler rendering the API error envelope."""
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(
            "Unhandled API error",
            view=type(view).__name__ if view else None,
            error=str(exc),
        )
        return Response(
            {
                'success': False,
                'error': {'code': 'server_error', 'message': 'Internal server error'},
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    error = {
        'code': getattr(exc, 'default_code', 'error'),
        'message': _first_message(response.data),
    }
    if isinstance(exc, ValidationError):
        error['details'] = response.data

    response.data = {'success': False, 'error': error}
    return response
