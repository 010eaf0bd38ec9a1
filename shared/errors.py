"""
Shared error handling for the HR services platform.

Every service renders failures with the same envelope::

    {"status": "error", "statusCode": 404, "message": "...", "errors": [...]}
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = "error"
    status_code: int = Field(alias="statusCode")
    message: str
    errors: Optional[List[Any]] = None
    error: Optional[str] = None

    def to_content(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ServiceException(Exception):
    """Base exception for platform services.

    Carries a machine readable ``kind`` next to the HTTP status so handlers
    and callers can branch on the failure category without string matching.
    """

    kind = "INTERNAL_ERROR"
    status_code = 500
    headers: Optional[Dict[str, str]] = None

    def __init__(self, message: str, errors: Optional[List[Any]] = None,
                 status_code: Optional[int] = None):
        self.message = message
        self.errors = errors
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self, debug: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            status_code=self.status_code,
            message=self.message,
            errors=self.errors or None,
            error=debug,
        )


class ValidationError(ServiceException):
    """Malformed or missing input."""

    kind = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str = "Validation error", errors: Optional[List[Any]] = None):
        super().__init__(message, errors)


class AuthenticationError(ServiceException):
    """Authentication-related errors."""

    kind = "AUTHENTICATION_ERROR"
    status_code = 401

    def __init__(self, message: str = "Unauthorized", errors: Optional[List[Any]] = None):
        super().__init__(message, errors)


class AuthorizationError(ServiceException):
    """Authorization-related errors."""

    kind = "AUTHORIZATION_ERROR"
    status_code = 403

    def __init__(self, message: str = "Forbidden - insufficient permissions",
                 errors: Optional[List[Any]] = None):
        super().__init__(message, errors)


class NotFoundError(ServiceException):
    """Requested entity does not exist."""

    kind = "NOT_FOUND"
    status_code = 404

    def __init__(self, message: str = "Resource not found", errors: Optional[List[Any]] = None):
        super().__init__(message, errors)


class ReferenceNotFoundError(NotFoundError):
    """A foreign entity owned by another service is confirmed absent."""

    kind = "REFERENCE_NOT_FOUND"

    def __init__(self, entity: str, reference_id: str, status_code: int = 404):
        super().__init__(f"{entity.capitalize()} not found")
        self.entity = entity
        self.reference_id = reference_id
        self.status_code = status_code


class ConflictError(ServiceException):
    """Uniqueness violation."""

    kind = "CONFLICT"
    status_code = 409

    def __init__(self, message: str = "Resource already exists", errors: Optional[List[Any]] = None):
        super().__init__(message, errors)


class RateLimitError(ServiceException):
    """The caller exhausted its request window; ``headers`` tell it when to retry."""

    kind = "RATE_LIMIT_ERROR"
    status_code = 429

    def __init__(self, message: str = "Too many requests, please try again later",
                 headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.headers = headers


class UpstreamUnavailableError(ServiceException):
    """A dependency could not be reached, timed out or answered with 5xx."""

    kind = "UPSTREAM_UNAVAILABLE"
    status_code = 503

    def __init__(self, service: str, detail: Optional[str] = None):
        super().__init__(f"Service {service} is currently unavailable")
        self.service = service
        self.detail = detail


class InternalError(ServiceException):
    """Unanticipated failure."""

    kind = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str = "Internal server error", errors: Optional[List[Any]] = None):
        super().__init__(message, errors)
