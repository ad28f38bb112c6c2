from typing import Optional, Any


class MementoError(Exception):
    """
    Base exception for the Memento backend.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ResourceNotFoundError(MementoError):
    """
    Raised when a requested user, session or payment record is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class AuthenticationError(MementoError):
    """
    Raised when a session token is missing, unknown or expired, or a password is wrong.
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)


class SignatureVerificationError(AuthenticationError):
    """
    Raised when a payment webhook fails signature verification.
    Reported as 400 so the sender treats it as a bad request.
    """
    def __init__(self, message: str = "Invalid webhook signature", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "INVALID_SIGNATURE"
        self.status_code = 400


class ConflictError(MementoError):
    """
    Raised when a registration email is already in use.
    """
    def __init__(self, message: str = "Email already in use", details: Optional[Any] = None):
        super().__init__(message, code="CONFLICT", status_code=400, details=details)


class ConfigurationError(MementoError):
    """
    Raised when a required setting is absent. Indicates a deployment error.
    """
    def __init__(self, message: str = "Service is not configured", details: Optional[Any] = None):
        super().__init__(message, code="CONFIGURATION_ERROR", status_code=500, details=details)


class ExternalServiceError(MementoError):
    """
    Raised when Stripe or MongoDB fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None):
        super().__init__(message, code="UPSTREAM_ERROR", status_code=500, details=details)
