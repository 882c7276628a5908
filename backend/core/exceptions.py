"""
Project-wide REST framework exception handler.

Every API error leaves with the same envelope:
    {"status": "fail", "message": "...", ...}   for 4xx
    {"status": "error", "message": "..."}       for 5xx
"""
import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def first_error(detail, field=None):
    """Walk a ValidationError detail and return (field, message) of the first error"""
    if isinstance(detail, dict):
        for key, value in detail.items():
            return first_error(value, field if key == 'non_field_errors' else (field or key))
    elif isinstance(detail, (list, tuple)):
        for item in detail:
            if item:
                return first_error(item, field)
    elif detail is not None:
        return field, str(detail)
    return field, None


def flatten_errors(detail):
    """Collect every error message from a ValidationError detail"""
    if isinstance(detail, dict):
        return [message for value in detail.values() for message in flatten_errors(value)]
    if isinstance(detail, (list, tuple)):
        return [message for item in detail for message in flatten_errors(item)]
    return [str(detail)] if detail else []


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.error(
            f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}: {exc}",
            exc_info=exc,
        )
        return Response(
            {'status': 'error', 'message': 'Internal server error'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    body = {'status': 'error' if response.status_code >= 500 else 'fail'}

    if isinstance(exc, exceptions.ValidationError):
        field, message = first_error(exc.detail)
        body['message'] = message or 'Validation failed.'
        messages = flatten_errors(exc.detail)
        if field:
            body['field'] = field
        if field or len(messages) > 1:
            body['errors'] = messages
    elif isinstance(exc, exceptions.NotAuthenticated):
        body['message'] = 'Access denied. No authorization header provided.'
        body['code'] = 'NO_AUTH_HEADER'
    else:
        detail = exc.detail if isinstance(exc, exceptions.APIException) else response.data
        if isinstance(detail, dict):
            # simplejwt packs its errors into {"detail": ..., "code": ...}
            body['message'] = str(detail.get('detail', 'Request failed'))
            code = detail.get('code')
        else:
            body['message'] = str(detail)
            code = getattr(detail, 'code', None)
        if code:
            body['code'] = str(code)
        body.update({k: v for k, v in getattr(exc, 'extra', {}).items() if v is not None})

    response.data = body
    return response
