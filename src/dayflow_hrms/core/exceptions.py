class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    status_code = 400


class AuthenticationError(DomainError):
    """Raised when credentials or tokens are invalid."""

    status_code = 401


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    """Raised when a unique resource already exists (e.g. email)."""

    status_code = 409


class AccountLockedError(AuthenticationError):
    """Raised while an account is locked after repeated failed logins."""

    status_code = 423


class RateLimitExceeded(DomainError):
    status_code = 429
