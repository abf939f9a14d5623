# backend/app/core/errors.py
"""
Domain errors raised by the service layer.

Every error carries the HTTP status it maps to; the handler registered in
main.py renders them as {"detail": message}, the same body HTTPException
produces, so the frontend sees one error shape.
"""
from fastapi import status


class LegacyError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(LegacyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(LegacyError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFound(LegacyError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ValidationFailed(LegacyError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Conflict(LegacyError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class DependencyFailure(LegacyError):
    """An external collaborator (storage, captions) failed."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service failed"
