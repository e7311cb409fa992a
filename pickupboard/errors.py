"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class AuthorizationError(AppError):
    """Raised when the signed-in user may not perform an action."""

    def __init__(self, message="You are not allowed to do that."):
        """Initialize the error."""
        super().__init__(message, 403)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class ConflictError(AppError):
    """Raised when an event changed since the caller last read it."""

    def __init__(self, message="This event was changed by someone else."):
        """Initialize the error."""
        super().__init__(message, 409)


class StoreUnavailableError(AppError):
    """Raised when Firestore cannot be reached at all."""

    def __init__(self, message="The event board is unavailable. Please try again."):
        """Initialize the error."""
        super().__init__(message, 503)
