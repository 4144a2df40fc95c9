"""
Base classes and interfaces for external intelligence providers.

Every provider owns the projection of its native response into a
``NormalizedPayload``; the aggregation core never parses provider formats.
Providers reach the network only through the ``Transport`` interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from netknife.config.logging import get_logger
from netknife.core.cache import ResponseCache
from netknife.core.exceptions import (
    MalformedResponseError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderUnauthorizedError,
    RateLimitError,
    UnsupportedSubjectError,
)
from netknife.core.transport import Transport, TransportResponse
from netknife.models.intel import NormalizedPayload, Subject, SubjectKind


@dataclass(frozen=True)
class ProviderResponse:
    """Normalized payload plus whether it was served from cache."""
    payload: NormalizedPayload
    cached: bool = False


class ProviderClient(ABC):
    """Abstract base class for all intelligence providers."""

    provider_id: str = ""
    display_name: str = ""
    supported_kinds: FrozenSet[SubjectKind] = frozenset()
    default_cache_ttl: int = 3600
    requires_api_key: bool = False

    def __init__(self, transport: Transport, cache: Optional[ResponseCache] = None,
                 api_key: Optional[str] = None, cache_ttl: Optional[int] = None,
                 timeout: Optional[float] = None, user_agent: str = "NetKnife-Intel/1.0"):
        self.transport = transport
        self.cache = cache
        self.api_key = api_key
        self.cache_ttl = self.default_cache_ttl if cache_ttl is None else cache_ttl
        self.timeout = timeout
        self.user_agent = user_agent
        self.logger = get_logger(f"{__name__}.{self.provider_id}")

    @property
    def configured(self) -> bool:
        """False when a required API key is missing."""
        return not self.requires_api_key or bool(self.api_key)

    def supports(self, kind: SubjectKind) -> bool:
        return kind in self.supported_kinds

    def cache_subject(self, subject: Subject) -> str:
        """Value the cache entry is keyed under; the subject value by default."""
        return subject.value

    async def query(self, subject: Subject, timeout: float) -> ProviderResponse:
        """Look up a subject, consulting the cache first.

        Raises:
            ProviderError: any failure to obtain a usable payload.
        """
        if not self.supports(subject.kind):
            raise UnsupportedSubjectError(
                f"{self.display_name} does not support {subject.kind.value} lookups"
            )

        cache_value = self.cache_subject(subject)
        if self.cache is not None:
            cached = await self.cache.get(self.provider_id, cache_value)
            if cached is not None:
                return ProviderResponse(payload=cached, cached=True)

        if not self.configured:
            raise ProviderNotConfiguredError(f"{self.display_name} API key not configured")

        raw = await self.fetch(subject, timeout)

        try:
            payload = self.normalize(raw, subject)
        except ProviderError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise MalformedResponseError(
                f"Unexpected {self.display_name} response format: {e}"
            )

        if self.cache is not None:
            await self.cache.set(self.provider_id, cache_value, payload, self.cache_ttl)

        return ProviderResponse(payload=payload, cached=False)

    @abstractmethod
    async def fetch(self, subject: Subject, timeout: float) -> Any:
        """Call the provider and return its decoded native response."""

    @abstractmethod
    def normalize(self, raw: Any, subject: Subject) -> NormalizedPayload:
        """Project the native response onto the normalized field set."""

    async def _request(self, url: str, timeout: float, method: str = "GET",
                       body: Optional[Any] = None,
                       headers: Optional[Mapping[str, str]] = None,
                       params: Optional[Mapping[str, str]] = None,
                       accept_status: Iterable[int] = ()) -> TransportResponse:
        """Send a request and map HTTP error statuses onto provider errors.

        Statuses listed in ``accept_status`` are returned to the caller
        instead of raising, for providers whose "not found" is a 404.
        """
        request_headers: Dict[str, str] = {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
        }
        request_headers.update(headers or {})

        response = await self.transport.call(
            url, method=method, body=body, timeout=timeout,
            headers=request_headers, params=params,
        )

        if response.ok or response.status_code in accept_status:
            return response

        if response.status_code in (401, 403):
            raise ProviderUnauthorizedError(f"Invalid or unauthorized {self.display_name} API key")
        if response.status_code == 429:
            retry_after = _parse_retry_after(response.headers)
            raise RateLimitError(
                f"{self.display_name} rate limit exceeded. Please try again later.",
                retry_after=retry_after,
            )
        raise ProviderError(f"{self.display_name} API error: {response.status_code}")

    async def _get_json(self, url: str, timeout: float, **kwargs: Any) -> Any:
        response = await self._request(url, timeout, **kwargs)
        return response.json()


def _parse_retry_after(headers: Mapping[str, str]) -> Optional[int]:
    for name, value in headers.items():
        if name.lower() == "retry-after":
            try:
                return int(value)
            except (TypeError, ValueError):
                return None
    return None


def require_mapping(raw: Any, provider: str) -> Dict[str, Any]:
    """Reject responses whose top level is not a JSON object."""
    if not isinstance(raw, dict):
        raise MalformedResponseError(f"{provider} returned {type(raw).__name__}, expected object")
    return raw


def as_bool(value: Any) -> bool:
    """Provider booleans, tolerating "true"/"false" strings."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def as_int(value: Any, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default
