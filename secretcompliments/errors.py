"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when a required field is missing or blank."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class NotFoundError(AppError):
    """Raised when a group id does not resolve."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class MembershipError(AppError):
    """Raised when a compliment names someone outside the group."""

    def __init__(self, message="Both people must be members of the group."):
        """Initialize the error."""
        super().__init__(message, 403)


class IdentityNotReadyError(AppError):
    """Raised when an operation runs before the user id is known."""

    def __init__(self, message="User ID not ready. Please wait a moment."):
        """Initialize the error."""
        super().__init__(message, 503)


class ReadError(AppError):
    """Raised when the store cannot be read."""

    def __init__(self, message="Could not load data. Please try again."):
        """Initialize the error."""
        super().__init__(message, 503)


class WriteError(AppError):
    """Raised when the store rejects or cannot receive a write."""

    def __init__(self, message="Could not save your changes."):
        """Initialize the error."""
        super().__init__(message, 503)
