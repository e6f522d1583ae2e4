"""
Custom Exceptions for SynthAI

Hierarchical exception classes for proper error handling across layers.
"""

from typing import Optional, Dict, Any

from app.domain.access import DenyReason


class SynthAIError(Exception):
    """Base exception for all SynthAI errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class AccessDeniedError(SynthAIError):
    """Raised when the gate denies an operation."""

    _MESSAGES = {
        DenyReason.UNAUTHENTICATED: "Authentication required",
        DenyReason.SUBSCRIPTION_REQUIRED: "An active subscription is required",
        DenyReason.LIMIT_EXCEEDED: "Free usage limit reached. Please upgrade to pro.",
    }

    def __init__(self, reason: DenyReason):
        super().__init__(self._MESSAGES[reason])
        self.reason = reason

    @property
    def status_code(self) -> int:
        if self.reason == DenyReason.UNAUTHENTICATED:
            return 401
        return 403

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["reason"] = self.reason.value
        return payload


class ValidationError(SynthAIError):
    """Raised when input validation fails."""
    pass


class NotFoundError(SynthAIError):
    """Raised when a requested resource is not found."""
    pass


class ConfigurationError(SynthAIError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)


class UpstreamError(SynthAIError):
    """
    Raised when a billing, LLM or database call fails.

    Surfaced to clients as HTTP 500 with ``public_message`` only.
    """

    public_message = "An upstream service failed. Please try again."


class DatabaseError(UpstreamError):
    """Raised when database operations fail."""

    public_message = "A database error occurred."

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class AIServiceError(UpstreamError):
    """Raised when LLM operations fail."""

    public_message = "An error occurred during chat completion."

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if model:
            details["model"] = model
        if operation:
            details["operation"] = operation
        super().__init__(message, details, original_error)


class BillingProviderError(UpstreamError):
    """Raised when Stripe or PayPal calls fail."""

    public_message = "The billing provider request failed."

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if provider:
            details["provider"] = provider
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, details, original_error)
