"""
Application error taxonomy.

Services and the storage gateway raise these; the exception handlers in
``contextkeeper.main`` turn them into the ``{error, message}`` envelope.
"""

from typing import Optional


class AppError(Exception):
    status_code: int = 500
    category: str = "Server Error"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        # Raw upstream text (storage/auth). Logged, shown to clients only outside production.
        self.detail = detail
        super().__init__(self.message)


class Unauthenticated(AppError):
    status_code = 401
    category = "Unauthorized"
    default_message = "Invalid or expired token"


class InvalidInput(AppError):
    status_code = 400
    category = "Bad Request"
    default_message = "Invalid request body"


class NotFound(AppError):
    status_code = 404
    category = "Not Found"
    default_message = "Resource not found"


class StorageError(AppError):
    retryable: bool = False


class StorageUnavailable(StorageError):
    """Transport or connection failure talking to the store; the caller may retry."""
    category = "Database Unavailable"
    default_message = "Database is unavailable"
    retryable = True


class StorageRejected(StorageError):
    """The store refused the operation (constraint violation, malformed write)."""
    category = "Database Error"
    default_message = "Database rejected the operation"


class InternalError(AppError):
    category = "Server Error"


class ConfigurationError(RuntimeError):
    pass
