# backend/travel_itinerary/core/errors.py

"""
Error taxonomy shared by the REST and GraphQL surfaces.

Every error the services raise deliberately is an ``AppError``; the transport
adapters map ``status_code``/``code`` onto their own error shapes. Anything
else reaching a handler is treated as an internal error.
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message, "code": self.code}
        if self.field:
            body["field"] = self.field
        return body


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class DuplicateEmail(AppError):
    status_code = 400
    code = "DUPLICATE_EMAIL"

    def __init__(self, message: str = "User already exists with this email"):
        super().__init__(message, field="email")


class Unauthenticated(AppError):
    status_code = 401
    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class InvalidToken(Unauthenticated):
    code = "INVALID_TOKEN"

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class InvalidCredentials(AppError):
    status_code = 401
    code = "INVALID_CREDENTIALS"

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class UserNotFound(Unauthenticated):
    code = "USER_NOT_FOUND"

    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class Forbidden(AppError):
    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"


class RateLimited(AppError):
    status_code = 429
    code = "RATE_LIMITED"

    def __init__(self, message: str = "Too many requests from this IP, please try again later."):
        super().__init__(message)


class InternalError(AppError):
    pass
