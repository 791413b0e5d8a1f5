from dataclasses import dataclass

from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    INVALID_TOKEN = ErrorDefinition("INVALID_TOKEN", "Invalid token", status.HTTP_401_UNAUTHORIZED)
    PERMISSION_DENIED = ErrorDefinition(
        "PERMISSION_DENIED",
        "Permission denied",
        status.HTTP_403_FORBIDDEN,
    )
    SHOP_ACCESS_DENIED = ErrorDefinition(
        "SHOP_ACCESS_DENIED",
        "Unauthorized access to this shop",
        status.HTTP_403_FORBIDDEN,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    LOCK_TIMEOUT = ErrorDefinition(
        "LOCK_TIMEOUT",
        "Lock wait timeout",
        status.HTTP_409_CONFLICT,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)


class ForbiddenError(AppError):
    """Caller may not see this report: bad identity, missing permission or foreign shop."""

    def __init__(self, error: ErrorDefinition = ErrorCatalog.PERMISSION_DENIED, details: object | None = None):
        super().__init__(error, details)


class ValidationError(AppError):
    def __init__(self, details: object | None = None):
        super().__init__(ErrorCatalog.VALIDATION_ERROR, details)


class StorageError(AppError):
    """A storage query failed. Never retried here; the cause is chained."""

    def __init__(self, error: ErrorDefinition = ErrorCatalog.DB_UNAVAILABLE, details: object | None = None):
        super().__init__(error, details)
