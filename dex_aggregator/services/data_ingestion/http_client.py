"""
Shared HTTP plumbing for provider adapters.

Wraps one aiohttp session per provider and translates HTTP failures into
the service error taxonomy:
    429            -> RateLimitError (not retried)
    502/503/504    -> ServiceUnavailableError (retried with backoff)
    network errors -> ServiceUnavailableError (retried with backoff)
    404            -> None
    other >= 400   -> ExternalAPIError
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from dex_aggregator.core.config import settings
from dex_aggregator.services.base import (
    ExternalAPIError,
    RateLimitError,
    ServiceUnavailableError,
)

logger = logging.getLogger(__name__)

USER_AGENT = "DexTokenAggregator/0.1"
UNAVAILABLE_STATUSES = {502, 503, 504}


class HTTPProviderClient:
    """JSON-over-HTTP client for a single provider."""

    def __init__(
        self,
        service_name: str,
        base_url: str,
        timeout: float,
        max_retries: Optional[int] = None,
        retry_min_wait: Optional[float] = None,
        retry_max_wait: Optional[float] = None,
    ):
        self.service_name = service_name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = settings.provider_max_retries if max_retries is None else max_retries
        self.retry_min_wait = (
            settings.provider_retry_min_wait if retry_min_wait is None else retry_min_wait
        )
        self.retry_max_wait = (
            settings.provider_retry_max_wait if retry_max_wait is None else retry_max_wait
        )
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={
                    "Accept": "application/json",
                    "User-Agent": USER_AGENT,
                },
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def get_json(self, path: str, params: Optional[dict[str, Any]] = None) -> Optional[Any]:
        """GET `path` and decode JSON, retrying transient failures."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.retry_min_wait,
                min=self.retry_min_wait,
                max=self.retry_max_wait,
            ),
            retry=retry_if_exception_type(ServiceUnavailableError),
            before_sleep=self._log_retry,
            reraise=True,
        )
        return await retrying(self._get_once, path, params)

    def _log_retry(self, retry_state) -> None:
        logger.info(
            f"{self.service_name} request failed "
            f"(attempt {retry_state.attempt_number}/{self.max_retries + 1}): "
            f"{retry_state.outcome.exception()}"
        )

    async def _get_once(self, path: str, params: Optional[dict[str, Any]]) -> Optional[Any]:
        session = await self._ensure_session()
        url = f"{self.base_url}/{path.lstrip('/')}"
        query = {k: v for k, v in (params or {}).items() if v is not None}

        try:
            async with session.get(url, params=query) as response:
                if response.status == 404:
                    return None
                if response.status == 429:
                    raise RateLimitError(
                        self.service_name,
                        retry_after=_retry_after(response.headers.get("Retry-After")),
                    )
                if response.status in UNAVAILABLE_STATUSES:
                    raise ServiceUnavailableError(
                        self.service_name,
                        f"{self.service_name} service unavailable",
                        status_code=response.status,
                    )
                if response.status >= 400:
                    raise ExternalAPIError(
                        self.service_name,
                        f"{self.service_name} API error: HTTP {response.status}",
                        status_code=response.status,
                    )
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise ExternalAPIError(
                        self.service_name,
                        f"{self.service_name} returned malformed JSON: {e}",
                        status_code=response.status,
                    ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ServiceUnavailableError(
                self.service_name,
                f"{self.service_name} request failed: {e!r}",
            ) from e


def _retry_after(header: Optional[str]) -> Optional[float]:
    if not header:
        return None
    try:
        return float(header)
    except ValueError:
        return None


def parse_float(value: Any, default: float = 0.0) -> float:
    """Lenient float parsing for provider payloads (strings, None, junk)."""
    if value is None or value == "":
        return default
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    if parsed != parsed or parsed in (float("inf"), float("-inf")):
        return default
    return parsed


def parse_int(value: Any, default: int = 0) -> int:
    try:
        return int(float(value)) if value not in (None, "") else default
    except (TypeError, ValueError, OverflowError):
        return default


def parse_amount(value: Any) -> float:
    """Non-negative figure (price, volume, market cap, liquidity)."""
    return max(0.0, parse_float(value))
