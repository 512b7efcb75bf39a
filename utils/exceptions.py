from django.http import Http404
from loguru import logger
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.views import exception_handler


class ConflictError(APIException):
    """Duplicate unique key or an operation the current state does not allow"""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The request conflicts with the current state of the resource.'
    default_code = 'conflict'


class TransientError(APIException):
    """Infrastructure failure (transaction commit, file I/O); the caller may retry"""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Temporary failure, please retry.'
    default_code = 'transient'


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return ''
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ''
    return str(detail)


def custom_exception_handler(exc, context):
    """
    Render every API error as {"message": ..., "errors": {...}}.

    `errors` is only present for validation failures and carries the
    per-field messages produced by the serializer.
    """
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {exc}")
        return None

    if isinstance(exc, ValidationError):
        detail = exc.detail
        if isinstance(detail, dict):
            errors = {
                key: [str(v) for v in value] if isinstance(value, (list, tuple)) else [str(value)]
                for key, value in detail.items()
            }
        else:
            errors = {'non_field_errors': [str(v) for v in detail]}
        response.data = {
            'message': _first_message(detail) or 'Invalid input',
            'errors': errors,
        }
    elif isinstance(exc, Http404):
        response.data = {'message': str(exc) or 'Not found'}
    else:
        response.data = {'message': _first_message(response.data.get('detail', response.data))}

    if response.status_code >= 500:
        logger.error(f"{response.status_code} {response.data['message']}")

    return response
