"""
Async HTTP plumbing shared by the ESPN reader and the Telegram notifier.

BaseApiClient spaces requests, retries server and transport failures with
capped exponential backoff, and maps every failure onto ExternalAPIError:

    ExternalAPIError        anything that went wrong talking to a remote API
    ├── AuthenticationError 401/403 (expired espn_s2/SWID cookies, bad bot token)
    ├── RateLimitError      429 after the retries are spent
    └── InvalidResponseError body is not JSON (ESPN serves an HTML login page)

Subclasses set BASE_URL and their default headers; tests inject an
``httpx.MockTransport`` through ``transport``.
"""

import asyncio
import logging
import time
from typing import Any

import httpx

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ExternalAPIError(Exception):
    """Base exception for external API errors."""

    def __init__(
        self,
        message: str,
        code: str = "EXTERNAL_API_ERROR",
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class AuthenticationError(ExternalAPIError):
    """The remote API rejected our credentials."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message, code="AUTH_FAILED", status_code=status_code)


class RateLimitError(ExternalAPIError):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, message: str, retry_after: int = 60):
        super().__init__(message, code="RATE_LIMITED", status_code=429)
        self.retry_after = retry_after


class InvalidResponseError(ExternalAPIError):
    """A successful response whose body could not be decoded as JSON."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message, code="INVALID_RESPONSE", status_code=status_code)


# ---------------------------------------------------------------------------
# Rate limiter
# ---------------------------------------------------------------------------

class RateLimiter:
    """Keeps at least 60/requests_per_minute seconds between requests."""

    def __init__(self, requests_per_minute: int = 600):
        self.delay = 60.0 / requests_per_minute
        self._last_request = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        async with self._lock:
            wait = self.delay - (time.monotonic() - self._last_request)
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_request = time.monotonic()


def _retry_after_seconds(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if value and value.isdigit():
        return min(float(value), 30.0)
    return None


# ---------------------------------------------------------------------------
# Base client
# ---------------------------------------------------------------------------

class BaseApiClient:
    """
    Async HTTP client base with rate limiting and retries.

    The underlying ``httpx.AsyncClient`` is created on first use (or on
    ``async with``) and recreated if it was closed, so a long-lived service
    can hold one instance and call ``close()`` on shutdown.

    Retry policy: ``max_retries`` retries after the first attempt. 5xx,
    429 and transport errors back off as ``base_delay * 2**attempt`` capped
    at ``max_delay`` (429 honours a numeric Retry-After up to 30s). Other
    4xx responses fail immediately.
    """

    BASE_URL: str = ""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        requests_per_minute: int = 600,
        timeout: float = 30.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
        follow_redirects: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = (base_url or self.BASE_URL).rstrip("/")
        self._default_headers = headers or {}
        self._default_params = params or {}
        self._rate_limiter = RateLimiter(requests_per_minute)
        self._timeout = timeout
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._follow_redirects = follow_redirects
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    # -- Lifecycle -----------------------------------------------------------

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._default_headers,
            timeout=httpx.Timeout(self._timeout),
            follow_redirects=self._follow_redirects,
            transport=self._transport,
        )

    async def __aenter__(self) -> "BaseApiClient":
        self._client = self._build_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = self._build_client()
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def is_configured(self) -> bool:
        """Whether credentials are present. Subclasses with secrets override this."""
        return True

    # -- HTTP methods --------------------------------------------------------

    async def _get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return await self._request("GET", path, params=params, headers=headers)

    async def _post(
        self,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return await self._request("POST", path, params=params, json=json, headers=headers)

    def _backoff(self, attempt: int) -> float:
        return min(self._base_delay * (2 ** attempt), self._max_delay)

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Send one logical request, retrying as described on the class.

        Raises:
            AuthenticationError: 401 or 403
            RateLimitError: 429 on the final attempt
            InvalidResponseError: 2xx with a non-JSON body
            ExternalAPIError: Any other failure once retries are spent
        """
        merged_params = {**self._default_params, **(params or {})}
        request_headers = {**self._default_headers, **(headers or {})}
        attempts = self._max_retries + 1
        last_error: ExternalAPIError | None = None

        for attempt in range(attempts):
            is_last = attempt == attempts - 1
            await self._rate_limiter.acquire()

            try:
                response = await self.client.request(
                    method=method,
                    url=path,
                    params=merged_params,
                    json=json,
                    headers=request_headers,
                )
            except httpx.RequestError as e:
                last_error = ExternalAPIError(f"Request failed: {type(e).__name__}")
                reason = type(e).__name__
                wait = self._backoff(attempt)
            else:
                status = response.status_code
                if status < 400:
                    return self._decode(response)

                if status in (401, 403):
                    raise AuthenticationError(
                        f"HTTP {status}: credentials rejected by {self._base_url}",
                        status_code=status,
                    )
                if status == 429:
                    wait = _retry_after_seconds(response) or self._backoff(attempt)
                    last_error = RateLimitError(
                        f"API rate limit exceeded. Try again in {int(wait)} seconds.",
                        retry_after=int(wait),
                    )
                    reason = "rate limited"
                else:
                    last_error = ExternalAPIError(
                        f"HTTP {status}: {response.text[:200]}",
                        status_code=status,
                    )
                    if status < 500:
                        raise last_error
                    reason = f"HTTP {status}"
                    wait = self._backoff(attempt)

            if is_last:
                break
            logger.warning(
                "%s %s failed (%s), retrying in %.1fs (attempt %d/%d)",
                method,
                path,
                reason,
                wait,
                attempt + 1,
                attempts,
            )
            await asyncio.sleep(wait)

        raise last_error or ExternalAPIError("Request failed after retries")

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            content_type = response.headers.get("content-type", "unknown")
            raise InvalidResponseError(
                f"Expected JSON but got {content_type} (HTTP {response.status_code})"
            ) from None
