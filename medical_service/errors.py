"""
Error taxonomy shared by the store, the policy engine and the HTTP layer.

Every error carries the HTTP status it maps to; the Flask error handlers in
``medical_service.api.routes`` do the translation at the boundary.
"""

from typing import List, Optional


class ServiceError(Exception):
    """Base class for errors raised by the medical service."""
    status_code = 500
    title = "Server Error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.title)
        self.message = message or self.title


class ValidationError(ServiceError):
    """Malformed or missing input."""
    status_code = 400
    title = "Validation Error"

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.details = details or []


class UnauthorizedError(ServiceError):
    """No usable credentials on the request."""
    status_code = 401
    title = "Unauthorized"


class ForbiddenError(ServiceError):
    """The access policy denied the operation."""
    status_code = 403
    title = "Forbidden"


class NotFoundError(ServiceError):
    """A resource, or a user/team it references, does not exist."""
    status_code = 404
    title = "Not Found"


class ServiceUnavailableError(ServiceError):
    """A sibling service failed or could not be reached."""
    status_code = 503
    title = "Service Unavailable"
