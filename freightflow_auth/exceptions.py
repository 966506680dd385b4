# freightflow_auth/exceptions.py
"""Error taxonomy for the auth service.

Expected business outcomes (bad password, duplicate email, expired token) are
reported through ``AuthError`` on an ``AuthResult``; the exception classes
below are reserved for infrastructure and programming faults.
"""
import enum


class AuthError(str, enum.Enum):
    MISSING_FIELDS = "MissingFields"
    USER_EXISTS = "UserExists"
    USER_NOT_FOUND = "UserNotFound"
    INVALID_PASSWORD = "InvalidPassword"
    INVALID_OR_EXPIRED_TOKEN = "InvalidOrExpiredToken"
    NOTIFICATION_FAILURE = "NotificationFailure"


class AuthServiceError(Exception):
    """Base exception for all auth service errors."""

    pass


class DuplicateKeyError(AuthServiceError):
    """Raised by the store when an insert violates the unique email constraint."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"User with email '{email}' already exists")


class StoreUnavailableError(AuthServiceError):
    """Raised when the credential store cannot be reached or fails a query."""

    pass


class ConfigurationError(AuthServiceError):
    """Raised when there is a configuration error."""

    pass
