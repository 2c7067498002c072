"""
API error taxonomy.

Every failure that should reach the client as JSON is raised as an
``ApiError`` subclass; ``social.middleware.ApiErrorMiddleware`` turns it into
``{"error": message}`` with the matching status code.
"""


class ApiError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message=None, status_code=None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class InvalidRequest(ApiError):
    """Missing or malformed input."""

    status_code = 400
    default_message = "Invalid request"


class NotAuthenticated(ApiError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(ApiError):
    """The actor has no rights over the resource."""

    status_code = 403
    default_message = "You are not allowed to do that"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class Conflict(ApiError):
    """Duplicate action, e.g. following someone already followed."""

    status_code = 409
    default_message = "Conflicting request"


class UpstreamMediaError(ApiError):
    """The external media store failed."""

    status_code = 500
    default_message = "Media service error"


class MediaUploadError(UpstreamMediaError):
    default_message = "Failed to upload images"


class MediaDeleteError(UpstreamMediaError):
    default_message = "Failed to delete image"


class PersistenceError(ApiError):
    status_code = 500
    default_message = "Failed to save changes"


class MethodNotAllowed(ApiError):
    status_code = 405
    default_message = "Method not allowed"
