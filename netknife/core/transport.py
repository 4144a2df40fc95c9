"""
HTTP transport abstraction used by every provider client.

Providers depend on ``Transport`` only, never on a concrete HTTP stack, so the
aggregation core can be exercised with fakes. ``AiohttpTransport`` is the
production implementation and shares one client session across requests.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import aiohttp

from netknife.config.logging import get_logger
from netknife.core.exceptions import MalformedResponseError, NetworkError, ProviderTimeoutError

logger = get_logger(__name__)


@dataclass
class TransportResponse:
    """Status code and raw body of one HTTP exchange."""
    status_code: int
    body: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Decode the body as JSON."""
        try:
            return json.loads(self.body)
        except (TypeError, ValueError) as e:
            raise MalformedResponseError(f"Response body is not valid JSON: {e}")


class Transport(ABC):
    """Abstract HTTP transport."""

    @abstractmethod
    async def call(self, url: str, method: str = "GET", body: Optional[Any] = None,
                   timeout: float = 10.0, headers: Optional[Mapping[str, str]] = None,
                   params: Optional[Mapping[str, str]] = None) -> TransportResponse:
        """Perform one request.

        Raises:
            NetworkError: the remote end could not be reached.
            ProviderTimeoutError: no complete response within ``timeout`` seconds.
        """

    async def close(self) -> None:
        """Release any pooled connections."""


class AiohttpTransport(Transport):
    """Transport backed by a shared ``aiohttp.ClientSession``."""

    def __init__(self, user_agent: str = "NetKnife-Intel/1.0", connect_timeout: float = 5.0):
        self.user_agent = user_agent
        self.connect_timeout = connect_timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                headers={"User-Agent": self.user_agent},
                raise_for_status=False,
            )
        return self.session

    async def call(self, url: str, method: str = "GET", body: Optional[Any] = None,
                   timeout: float = 10.0, headers: Optional[Mapping[str, str]] = None,
                   params: Optional[Mapping[str, str]] = None) -> TransportResponse:
        session = await self._get_session()
        request_timeout = aiohttp.ClientTimeout(
            total=timeout, connect=min(self.connect_timeout, timeout)
        )

        request_kwargs: Dict[str, Any] = {
            "headers": dict(headers or {}),
            "params": dict(params or {}),
            "timeout": request_timeout,
        }
        if isinstance(body, (dict, list)):
            request_kwargs["json"] = body
        elif body is not None:
            request_kwargs["data"] = body

        try:
            async with session.request(method.upper(), url, **request_kwargs) as response:
                try:
                    text = await response.text()
                except UnicodeDecodeError as e:
                    raise MalformedResponseError(
                        f"Response from {_host_of(url)} could not be decoded: {e.reason}"
                    )
                return TransportResponse(
                    status_code=response.status,
                    body=text,
                    headers={k: v for k, v in response.headers.items()},
                )
        except asyncio.TimeoutError:
            raise ProviderTimeoutError(f"Request to {_host_of(url)} timed out after {timeout}s")
        except aiohttp.ClientError as e:
            raise NetworkError(f"Connection error contacting {_host_of(url)}: {e}")

    async def close(self) -> None:
        """Close HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()
            logger.debug("transport_session_closed")
        self.session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _host_of(url: str) -> str:
    """Host portion of a URL, so API keys embedded in paths never reach messages."""
    return urlparse(url).netloc or url
