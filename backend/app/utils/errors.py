"""
Custom error classes for the application.

"Not authorized yet" is not an error: the grant gate returns an
AuthRequired value (see app.models.grant) instead of raising.
"""
from typing import Optional


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        status_code: int = 500,
        details: Optional[dict] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert error to dictionary for response."""
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class InvalidRequestError(AppError):
    """Invalid request format."""

    def __init__(self, message: str = "Invalid request format."):
        super().__init__(message, "INVALID_REQUEST", status_code=400)


class InvalidMessage(AppError):
    """Outbound message failed validation."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else None
        super().__init__(message, "INVALID_MESSAGE", status_code=400, details=details)


class ProviderError(AppError):
    """Nylas API call failed."""

    def __init__(
        self,
        message: str = "Couldn't reach the email provider. Please try again.",
        provider_status: Optional[int] = None,
    ):
        details = {"provider_status": provider_status} if provider_status else None
        super().__init__(message, "PROVIDER_ERROR", status_code=502, details=details)
        self.provider_status = provider_status


class ExchangeFailed(AppError):
    """Authorization code could not be exchanged for a grant."""

    def __init__(self, message: str = "Failed to exchange authorization code for token"):
        super().__init__(message, "EXCHANGE_FAILED", status_code=500)


class DispatchFailed(AppError):
    """Provider refused or failed to send a message."""

    def __init__(self, message: str = "Failed to send email", provider_status: Optional[int] = None):
        details = {"provider_status": provider_status} if provider_status else None
        super().__init__(message, "DISPATCH_FAILED", status_code=502, details=details)


class StoreUnavailable(AppError):
    """Grant store could not be reached."""

    def __init__(self, message: str = "Grant store is unavailable."):
        super().__init__(message, "STORE_UNAVAILABLE", status_code=503)


class GrantOperationFailed(AppError):
    """A grant store operation failed (distinct from 'no grant')."""

    def __init__(self, operation: str):
        super().__init__(
            f"Failed to {operation}",
            "GRANT_OPERATION_FAILED",
            status_code=500,
            details={"operation": operation},
        )
        self.operation = operation


class AdminAuthError(AppError):
    """Missing or wrong admin key."""

    def __init__(self):
        super().__init__("Admin key required.", "ADMIN_AUTH_REQUIRED", status_code=401)


class GrantNotFoundError(AppError):
    """No grant stored for the requested user."""

    def __init__(self, user_id: str):
        super().__init__(f"No grant found for user '{user_id}'.", "GRANT_NOT_FOUND", status_code=404)
