"""Shared HTTP client and retrying request helper."""

import asyncio
import logging

import httpx

from fishcast.config import get_settings

logger = logging.getLogger(__name__)

# Singleton HTTP client (initialized lazily)
_http_client: httpx.AsyncClient | None = None


class UpstreamError(Exception):
    """An upstream HTTP service could not produce a usable response."""


class UpstreamStatusError(UpstreamError):
    """An upstream service answered with an error status."""

    def __init__(self, status_code: int, url: str) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(f"{url} responded with HTTP {status_code}")

    @property
    def retryable(self) -> bool:
        return is_retryable_status(self.status_code)


def is_retryable_status(status_code: int) -> bool:
    """Server errors and rate limiting are worth retrying."""
    return status_code == 429 or 500 <= status_code < 600


async def get_http_client() -> httpx.AsyncClient:
    """Get or create the singleton HTTP client."""
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=get_settings().http_timeout)
    return _http_client


async def close_http_client() -> None:
    """Close the HTTP client (call on app shutdown)."""
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


async def fetch_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    max_retries: int = 3,
    initial_delay: float = 1.0,
    **request_kwargs,
) -> httpx.Response:
    """
    Make an HTTP request, retrying transient failures with backoff.

    Network errors, 5xx and 429 are retried after
    `initial_delay * 2**attempt` seconds, for at most `max_retries + 1`
    attempts. Any other 4xx fails immediately. Cancelling the awaiting
    task cancels the request and any pending backoff.

    Args:
        client: HTTP client to use.
        method: HTTP method.
        url: Request URL.
        max_retries: Additional attempts after the first.
        initial_delay: Delay before the first retry, in seconds.
        **request_kwargs: Passed through to `client.request`.

    Returns:
        The first successful (non-error) response.

    Raises:
        UpstreamStatusError: Non-retryable status, or retryable status on
            the last attempt.
        httpx.TransportError: Network failure on the last attempt.
        ValueError: `max_retries` is negative.
    """
    if max_retries < 0:
        raise ValueError(f"max_retries must be >= 0, got {max_retries}")

    last_error: Exception = UpstreamError(f"No attempt made for {url}")
    for attempt in range(max_retries + 1):
        try:
            response = await client.request(method, url, **request_kwargs)
        except httpx.TransportError as e:
            last_error = e
            logger.warning(
                f"Request to {url} failed (attempt {attempt + 1}/{max_retries + 1}): {e!r}"
            )
        else:
            if response.status_code < 400:
                return response

            error = UpstreamStatusError(response.status_code, url)
            if not error.retryable:
                logger.warning(f"Non-retryable response from {url}: HTTP {response.status_code}")
                raise error

            last_error = error
            logger.warning(
                f"Retryable response from {url}: HTTP {response.status_code} "
                f"(attempt {attempt + 1}/{max_retries + 1})"
            )

        if attempt < max_retries:
            await asyncio.sleep(initial_delay * 2**attempt)

    raise last_error
