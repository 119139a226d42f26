"""
Error taxonomy for the indicator lifecycle.

Validation and conflict errors are expected outcomes of normal operation and
are rejected synchronously. StoreUnavailable is the only retryable class.
"""


class EDLError(Exception):
    """Base class for all domain errors"""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ValidationError(EDLError):
    status_code = 400
    code = "validation_error"


class NotFoundError(ValidationError):
    status_code = 404
    code = "not_found"


class UnknownCategory(NotFoundError):
    code = "unknown_category"


class IndicatorNotFound(NotFoundError):
    code = "indicator_not_found"


class ConflictError(EDLError):
    status_code = 409
    code = "conflict"


class AlreadyExists(ConflictError):
    code = "already_exists"


class AlreadyWhitelisted(ConflictError):
    code = "already_whitelisted"


class ProtectedCategory(ConflictError):
    code = "protected_category"


class DuplicateCategory(ConflictError):
    code = "duplicate_category"


class StoreUnavailable(EDLError):
    status_code = 503
    code = "store_unavailable"
    retryable = True
