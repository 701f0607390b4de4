"""Abstract base classes for name-data providers."""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import Any, TYPE_CHECKING

import httpx

from ..errors import ProviderError
from ..models import PartMetadata
from .debug_log import log_request_response

if TYPE_CHECKING:
    from ..rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

_MAX_API_RETRIES = 2
_RETRY_STATUSES = {429, 500, 502, 503, 504}


class NameProvider(ABC):
    """Abstract base class for name-data providers.

    A provider answers for one name part at a time. It returns whatever
    subset of PartMetadata it knows about, or None when the name is not in
    its data set. Any failure surfaces as ProviderError.

    Args:
        api_key: API key for the provider (may be empty where optional).
        rate_tier: Rate-limit tier for the provider's plan.
        log: Write sanitized request/response debug logs.
    """

    provider_name: str = "unknown"
    requires_api_key: bool = True

    # Set to True to disable rate limiting (for tests)
    _disable_rate_limiting: bool = False

    def __init__(
        self,
        api_key: str = "",
        *,
        rate_tier: int | None = None,
        log: bool = False,
    ) -> None:
        if self.requires_api_key and not api_key:
            raise ValueError(
                f"API key not found for {self.provider_name}. "
                f"Set it as an environment variable."
            )
        self._api_key = api_key
        self._rate_tier = rate_tier
        self._log = log
        self._cached_async_client = None
        self._rate_limiter: "RateLimiter | None" = None

    def _ensure_rate_limiter(self) -> "RateLimiter":
        """Lazily initialize the rate limiter for this provider."""
        if getattr(self, "_rate_limiter", None) is None:
            from ..rate_limiter import RateLimiter

            self._rate_limiter = RateLimiter.for_provider(
                provider=self.provider_name,
                tier=getattr(self, "_rate_tier", None),
            )
        return self._rate_limiter

    async def _acquire_rate_limit(self) -> float:
        """Acquire a request slot before making an API call."""
        if getattr(self, "_disable_rate_limiting", False):
            return 0.0
        return await self._ensure_rate_limiter().acquire()

    async def close_async(self) -> None:
        """Close the cached async client to release connections cleanly."""
        if self._cached_async_client is not None:
            await self._cached_async_client.aclose()
            self._cached_async_client = None

    @abstractmethod
    async def lookup(self, part: str) -> PartMetadata | None:
        """Look up one name part. None means the provider has no record of it."""
        ...


class _TransientHTTPError(Exception):
    """Retryable HTTP status (429 or 5xx)."""

    def __init__(self, response: httpx.Response):
        self.response = response
        super().__init__(f"HTTP {response.status_code}")


class HTTPNameProvider(NameProvider):
    """Base for providers backed by a JSON-over-HTTP API (httpx)."""

    base_url: str = ""

    # Seconds; multiplied by 2**attempt (+ jitter) between retries
    _retry_base_delay: float = 1.0

    def __init__(
        self,
        api_key: str = "",
        *,
        rate_tier: int | None = None,
        log: bool = False,
        timeout: float = 10.0,
        base_url: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(api_key, rate_tier=rate_tier, log=log)
        self._timeout = timeout
        self._transport = transport
        if base_url:
            self.base_url = base_url

    def _get_async_client(self) -> httpx.AsyncClient:
        if self._cached_async_client is None:
            kwargs: dict[str, Any] = {"timeout": self._timeout}
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._cached_async_client = httpx.AsyncClient(**kwargs)
        return self._cached_async_client

    async def _with_retry_async(self, fn, max_retries: int = _MAX_API_RETRIES):
        """Retry on transport errors and retryable statuses with exponential backoff."""
        for attempt in range(max_retries + 1):
            try:
                return await fn()
            except (httpx.TransportError, _TransientHTTPError) as e:
                if attempt == max_retries:
                    raise ProviderError(self.provider_name, e) from e
                wait = self._retry_base_delay * ((2**attempt) + random.random())
                logger.warning(
                    f"[{self.provider_name}] Transient error "
                    f"({attempt + 1}/{max_retries + 1}): "
                    f"{type(e).__name__}: {e}. Retrying in {wait:.1f}s"
                )
                await asyncio.sleep(wait)

    async def _get_json(self, path: str, params: dict[str, Any]) -> tuple[int, Any]:
        """GET base_url/path and return (status_code, decoded JSON).

        Retryable statuses are retried; other non-2xx statuses are returned
        so that subclasses can read the provider's error payload.
        """
        client = self._get_async_client()
        url = f"{self.base_url.rstrip('/')}/{path.lstrip('/')}" if path else self.base_url

        async def _call() -> httpx.Response:
            await self._acquire_rate_limit()
            response = await client.get(url, params=params)
            if self._rate_limiter is not None:
                self._rate_limiter.update_from_headers(response.headers)
            if response.status_code in _RETRY_STATUSES:
                raise _TransientHTTPError(response)
            return response

        response = await self._with_retry_async(_call)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(self.provider_name, "malformed JSON response") from e

        if self._log:
            log_request_response(
                function_name=path.strip("/").replace("/", "_") or "lookup",
                request={"url": url, "params": params},
                response=data,
                provider=self.provider_name,
            )

        return response.status_code, data
