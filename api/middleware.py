import logging
import traceback

from bson.errors import InvalidId
from django.conf import settings
from django.http import HttpResponseNotAllowed
from mongoengine.errors import DoesNotExist, NotUniqueError, ValidationError

from .errors import ApiError
from .serializers import json_response

logger = logging.getLogger(__name__)


def _error_body(status, message, exc=None):
    body = {'status': status, 'message': message}
    if settings.DEBUG and exc is not None:
        body['stack'] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return body


def _validation_message(exc):
    if exc.errors:
        return '; '.join(f'{field}: {error}' for field, error in exc.to_dict().items())
    return exc.message or str(exc)


class ErrorMiddleware:
    """Serializes exceptions raised by views into JSON error responses."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)
        if isinstance(response, HttpResponseNotAllowed):
            # Same error shape as everything else, keeping the Allow header
            allowed = response['Allow']
            response = json_response(
                _error_body('fail', f'Method {request.method} not allowed'), status=405)
            response['Allow'] = allowed
        return response

    def process_exception(self, request, exception):
        if isinstance(exception, ApiError):
            status_code, message = exception.status_code, exception.message
        elif isinstance(exception, ValidationError):
            status_code, message = 400, _validation_message(exception)
        elif isinstance(exception, NotUniqueError):
            status_code, message = 400, 'Duplicate value'
        elif isinstance(exception, DoesNotExist):
            status_code, message = 404, str(exception) or 'Resource not found'
        elif isinstance(exception, InvalidId):
            status_code, message = 400, 'Invalid id'
        else:
            logger.exception("Unhandled error on %s %s", request.method, request.path)
            status_code, message = 500, str(exception) or 'Server error'

        if status_code < 500:
            logger.info("%s %s -> %s: %s", request.method, request.path, status_code, message)
        status = 'fail' if status_code < 500 else 'error'
        return json_response(_error_body(status, message, exception), status=status_code)


def not_found(request, exception=None):
    return json_response(_error_body('fail', f'Not Found - {request.path}'), status=404)
