"""
Domain error types raised by the service layer.

Each error carries the HTTP status and error code it is reported with; the
API layer turns them into ``{"message", "errorCode"}`` responses.
"""

from typing import Any, Dict, Optional


class PharaohsError(Exception):
    """Base class for errors a service can classify."""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}


class ValidationError(PharaohsError):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class AuthenticationError(PharaohsError):
    status_code = 401
    error_code = "AUTHENTICATION_ERROR"


class AuthorizationError(PharaohsError):
    status_code = 403
    error_code = "AUTHORIZATION_ERROR"


class NotFoundError(PharaohsError):
    status_code = 404
    error_code = "NOT_FOUND"


class ConflictError(PharaohsError):
    status_code = 409
    error_code = "CONFLICT"


class PayloadTooLargeError(PharaohsError):
    status_code = 413
    error_code = "PAYLOAD_TOO_LARGE"


class UnsupportedMediaTypeError(PharaohsError):
    status_code = 415
    error_code = "UNSUPPORTED_MEDIA_TYPE"


class StorageError(PharaohsError):
    """Remote media storage failed to upload or delete an object."""

    status_code = 500
    error_code = "STORAGE_ERROR"
