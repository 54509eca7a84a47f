# app/errors.py
from enum import Enum
from typing import Any, Optional


class ErrorType(str, Enum):
    '''
    Structured classification of request failures.

    UNAUTHORIZED: no session, or the session user no longer exists.
    FORBIDDEN: authenticated, but the role lacks the capability and the caller is not the owner.
    VALIDATION_ERROR: malformed or out-of-range input, reported with field-level details.
    NOT_FOUND: the addressed or referenced entity does not exist.
    CONFLICT: a unique business key (job number, email, estimate version) is already taken.
    INTERNAL_ERROR: storage failure or anything unclassified.
    '''
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DomainError(Exception):
    status_code = 500
    error_type = ErrorType.INTERNAL_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {
            "success": False,
            "error": self.message,
            "errorType": self.error_type.value,
        }
        if self.details is not None:
            body["details"] = self.details
        return body


class Unauthorized(DomainError):
    status_code = 401
    error_type = ErrorType.UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(DomainError):
    status_code = 403
    error_type = ErrorType.FORBIDDEN
    default_message = "Forbidden"


class ValidationFailed(DomainError):
    status_code = 400
    error_type = ErrorType.VALIDATION_ERROR
    default_message = "Validation failed"


class NotFound(DomainError):
    status_code = 404
    error_type = ErrorType.NOT_FOUND
    default_message = "Not found"


class Conflict(DomainError):
    status_code = 409
    error_type = ErrorType.CONFLICT
    default_message = "Conflict"


class InternalError(DomainError):
    pass
