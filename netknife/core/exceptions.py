"""
Exception taxonomy for the aggregation core.

Only ``SubjectValidationError`` is ever surfaced to a caller as a request
failure. Every ``ProviderError`` is caught by the fan-out coordinator and
folded into that provider's outcome.
"""

from typing import Optional

from netknife.models.intel import OutcomeStatus


class NetKnifeError(Exception):
    """Base exception for the package."""


class SubjectValidationError(NetKnifeError):
    """Raised when a subject is malformed or cannot be classified."""


class ProviderError(NetKnifeError):
    """Base exception for provider failures."""

    def __init__(self, message: str, status: OutcomeStatus = OutcomeStatus.ERROR,
                 retry_after: Optional[int] = None):
        super().__init__(message)
        self.status = status
        self.retry_after = retry_after


class ProviderNotConfiguredError(ProviderError):
    """Raised when a provider needs an API key that was not supplied."""


class ProviderUnauthorizedError(ProviderError):
    """Raised when the provider rejects the API key."""


class RateLimitError(ProviderError):
    """Raised when the provider's rate limit is hit."""


class MalformedResponseError(ProviderError):
    """Raised when a provider response cannot be decoded or normalized."""


class NetworkError(ProviderError):
    """Raised when the transport cannot reach the provider."""


class UnsupportedSubjectError(ProviderError):
    """Raised when a provider is asked about a subject kind it does not handle."""


class ProviderTimeoutError(ProviderError):
    """Raised when a provider call exceeds its deadline."""

    def __init__(self, message: str):
        super().__init__(message, OutcomeStatus.TIMEOUT)
