"""Source provider exceptions."""

from datetime import datetime


class ProviderError(Exception):
    """Base exception for source provider errors."""

    pass


class ProviderAuthenticationError(ProviderError):
    """Raised when authentication fails (401)."""

    pass


class ProviderRateLimitError(ProviderError):
    """Raised when the provider's rate limit is exhausted."""

    def __init__(self, message: str, reset_at: datetime | None = None) -> None:
        super().__init__(message)
        self.reset_at = reset_at


class ProviderNotFoundError(ProviderError):
    """Raised when a resource is not found (404)."""

    pass


class OpNotSupportedError(Exception):
    """Raised by adapters for operations their platform does not have.

    This is an expected outcome, not a failure: callers catch it and
    continue without the feature.
    """

    def __init__(self, operation: str, provider: str) -> None:
        super().__init__(f"{operation} is not supported by {provider}")
        self.operation = operation
        self.provider = provider
