"""
Application Errors

Domain errors raised by services and rendered by the handlers
registered in app.main as {"error": ..., "message": ..., **details}.
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for errors that map to a client-facing response"""

    status_code = 500
    error = "server_error"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details: Dict[str, Any] = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.error, "message": self.message}
        body.update(self.details)
        return body


class ValidationFailed(AppError):
    status_code = 400
    error = "invalid_payload"
    default_message = "Invalid request"


class InvalidRange(ValidationFailed):
    default_message = "Check-out must be after check-in"


class Forbidden(AppError):
    status_code = 403
    error = "forbidden"
    default_message = "Access denied"


class NotFound(AppError):
    status_code = 404
    error = "not_found"
    default_message = "Not found"


class Conflict(AppError):
    status_code = 409
    error = "conflict"
    default_message = "Conflict"


class CapacityFull(Conflict):
    error = "full"
    default_message = "Experience is full"


class PolicyViolation(AppError):
    status_code = 400
    error = "policy"
    default_message = "Operation not permitted by policy"


class MissingPricing(AppError):
    status_code = 404
    error = "missing_pricing"
    default_message = "Property pricing not found"


HTTP_ERROR_CODES = {
    400: "invalid_payload",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    422: "invalid_payload",
    429: "rate_limited",
}


def error_code_for_status(status_code: int) -> str:
    """Map a bare HTTP status to the error code used in response bodies"""
    if status_code >= 500:
        return "server_error"
    return HTTP_ERROR_CODES.get(status_code, "error")
