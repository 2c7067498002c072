"""
================================================================================
SOCIAL API - CUSTOM MIDDLEWARE
================================================================================

@file        middleware.py
@description Error boundary turning exceptions into JSON error responses

MODULE PURPOSE
================================================================================
ApiErrorMiddleware is the single place where failures become HTTP responses.
Views and the coordinator raise; nothing below the view layer builds an
error response by hand.

ERROR MAPPING
================================================================================
    ApiError subclass       -> its status_code, its message
    django Http404          -> 404
    django PermissionDenied -> 403
    DatabaseError           -> 500 "Failed to save changes" (traceback logged)
    anything else           -> 500 "Something went wrong" (traceback logged)

Every error body has the same shape:

    {"error": "<message>"}

RELATED
================================================================================
- social.errors: the exception taxonomy
- social.views.not_found / server_error: handler404 / handler500 for
  requests that never reach a view (unknown URLs)

================================================================================
"""

import logging

from django.core.exceptions import PermissionDenied
from django.db import DatabaseError
from django.http import Http404, JsonResponse

from .errors import ApiError, PersistenceError

logger = logging.getLogger(__name__)


def error_response(message, status):
    return JsonResponse({"error": message}, status=status)


class ApiErrorMiddleware:
    """
    Convert exceptions raised by API views into JSON error responses.

    Flow:
        1. Request passes through untouched
        2. If the view raises, process_exception() maps the exception
        3. Unmapped exceptions are logged with traceback and reported as 500

    Attributes:
        get_response: Next middleware or view in the chain
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if isinstance(exception, ApiError):
            if exception.status_code >= 500:
                logger.error(f"{request.method} {request.path} failed: {exception.message}")
            return error_response(exception.message, exception.status_code)

        if isinstance(exception, Http404):
            return error_response(str(exception) or "Not found", 404)

        if isinstance(exception, PermissionDenied):
            return error_response(str(exception) or "You are not allowed to do that", 403)

        if isinstance(exception, DatabaseError):
            logger.exception(f"Database error on {request.method} {request.path}")
            return error_response(PersistenceError.default_message, PersistenceError.status_code)

        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return error_response(ApiError.default_message, 500)
