"""Async HTTP client for the listing backend.

:class:`CatalogHttpClient` is a thin layer over :class:`httpx.AsyncClient`
that decides which failures are worth another attempt:

* any 5xx, a 429 and transport-level errors (timeouts, refused
  connections) are retried by :mod:`tenacity`, with exponential back-off
  plus jitter, or the ``Retry-After`` delay of a 429;
* every other non-2xx status raises
  :class:`~depa_finder.core.exceptions.FetchError` on the first attempt.

Whatever the cause, a request that ultimately fails raises a plain
``FetchError`` whose ``detail`` is the user-facing text (``"API error: 500"``).

Typical usage::

    from depa_finder.source.http_client import CatalogHttpClient

    async with CatalogHttpClient(base_url="http://localhost:8000") as client:
        response = await client.get("/api/listings")
        payload = response.json()
"""

from __future__ import annotations

import logging
import random
from types import TracebackType
from typing import Any, Final

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)

from depa_finder.core.exceptions import FetchError

__all__ = ["CatalogHttpClient"]

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_TOO_MANY_REQUESTS: Final[int] = 429

_DEFAULT_CONNECT_TIMEOUT: Final[float] = 10.0
_DEFAULT_READ_TIMEOUT: Final[float] = 20.0
_DEFAULT_MAX_ATTEMPTS: Final[int] = 3

#: Back-off grows 1 s, 2 s, 4 s … and stops growing here (seconds).
_BACKOFF_CEILING: Final[float] = 30.0

#: Largest random delay added to each back-off step (seconds).
_BACKOFF_JITTER: Final[float] = 1.0
# ---------------------------------------------------------------------------
# Internal sentinel exceptions
# ---------------------------------------------------------------------------


class _RetryableStatusError(FetchError):
    """Internal: signals a 5xx / 429 status for tenacity to retry.

    Never escapes :meth:`CatalogHttpClient._request_with_retry` as its own
    type; it is re-raised as a plain :class:`FetchError` once retries run out.
    """

    def __init__(
        self,
        source: str,
        message: str,
        status_code: int,
        retry_after: float | None = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(source, message, status_code=status_code)


# ---------------------------------------------------------------------------
# Retry wait strategy
# ---------------------------------------------------------------------------


def _catalog_wait(retry_state: RetryCallState) -> float:
    """Compute the wait before the next attempt.

    Honours a positive ``retry_after`` hint from a 429 response; otherwise
    exponential back-off (1 s, 2 s, 4 s …) plus jitter.
    """
    if retry_state.outcome is not None:
        exc = retry_state.outcome.exception()
        if isinstance(exc, _RetryableStatusError) and exc.retry_after:
            logger.debug("Honouring Retry-After of %.1f s", exc.retry_after)
            return exc.retry_after

    step = min(2.0 ** max(retry_state.attempt_number - 1, 0), _BACKOFF_CEILING)
    return step + random.uniform(0.0, min(step, _BACKOFF_JITTER))


# ---------------------------------------------------------------------------
# Public client
# ---------------------------------------------------------------------------


class CatalogHttpClient:
    """Async HTTP client for the listing backend.

    Use as an ``async with`` context manager to guarantee the connection pool
    is closed on exit, or call :meth:`close` explicitly.

    Args:
        base_url: Base URL prepended to relative request paths.
        connect_timeout: TCP connection establishment timeout in seconds.
        read_timeout: Timeout for receiving the response.
        max_attempts: Total attempts including the initial try (≥ 1).
        transport: Optional custom :mod:`httpx` transport (tests inject an
            :class:`httpx.MockTransport` here).
        wait: Optional tenacity wait callable overriding the default
            back-off (tests pass ``tenacity.wait_none()``).

    Raises:
        ValueError: If ``max_attempts`` is less than 1.
    """

    def __init__(
        self,
        *,
        base_url: str = "",
        connect_timeout: float = _DEFAULT_CONNECT_TIMEOUT,
        read_timeout: float = _DEFAULT_READ_TIMEOUT,
        max_attempts: int = _DEFAULT_MAX_ATTEMPTS,
        transport: httpx.AsyncBaseTransport | None = None,
        wait: Any | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be ≥ 1, got {max_attempts!r}.")

        self._base_url = base_url
        self._max_attempts = max_attempts
        self._transport = transport
        self._wait = wait or _catalog_wait
        self._timeout = httpx.Timeout(
            connect=connect_timeout,
            read=read_timeout,
            write=10.0,
            pool=5.0,
        )
        self._http: httpx.AsyncClient | None = None

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> CatalogHttpClient:
        await self._ensure_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Perform an HTTP GET with retries.

        Args:
            url: The request URL or path (relative to ``base_url`` if set).
            params: Optional query-string parameters.

        Returns:
            The :class:`httpx.Response` on HTTP 2xx.

        Raises:
            FetchError: On any non-success status or network failure, after
                transient failures have exhausted the retry budget.
        """
        return await self._request_with_retry("GET", url, params=params)

    async def close(self) -> None:
        """Close the underlying HTTP client.  Safe to call repeatedly."""
        if self._http is not None and not self._http.is_closed:
            await self._http.aclose()
            logger.debug("CatalogHttpClient session closed.")
        self._http = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
            logger.debug(
                "CatalogHttpClient session opened (base_url=%r).", self._base_url or "(none)"
            )
        return self._http

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        source_label = self._base_url or url

        def _before_sleep(rs: RetryCallState) -> None:
            exc = rs.outcome.exception() if rs.outcome else None
            logger.warning(
                "HTTP %s %s: attempt %d/%d failed (%s). Retrying…",
                method,
                url,
                rs.attempt_number,
                self._max_attempts,
                type(exc).__name__ if exc else "?",
            )

        response: httpx.Response | None = None
        try:
            async for attempt in AsyncRetrying(
                wait=self._wait,
                stop=stop_after_attempt(self._max_attempts),
                retry=retry_if_exception_type((_RetryableStatusError, httpx.TransportError)),
                reraise=True,
                before_sleep=_before_sleep,
            ):
                with attempt:
                    response = await self._single_request(
                        method, url, params=params, source_label=source_label
                    )
        except _RetryableStatusError as exc:
            raise FetchError(source_label, exc.detail, status_code=exc.status_code) from exc
        except httpx.TransportError as exc:
            raise FetchError(
                source_label, f"{type(exc).__name__} while requesting {url}: {exc}"
            ) from exc

        assert response is not None, "tenacity exited without a response or exception"
        return response

    async def _single_request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None,
        source_label: str,
    ) -> httpx.Response:
        """Perform exactly one HTTP request and map its status.

        Raises:
            _RetryableStatusError: On HTTP 5xx or 429.
            FetchError: On other non-success statuses.
            httpx.TransportError: Network-level failures (propagated for retry).
        """
        client = await self._ensure_client()

        logger.debug("HTTP %s %s", method, url)
        response = await client.request(method, url, params=params)
        logger.debug(
            "HTTP %s %s → %d (%d bytes)",
            method,
            url,
            response.status_code,
            len(response.content),
        )

        if response.is_success:
            return response

        status = response.status_code
        message = f"API error: {status}"
        if status == _TOO_MANY_REQUESTS:
            raise _RetryableStatusError(
                source_label, message, status, retry_after=_parse_retry_after(response)
            )
        if status >= 500:
            raise _RetryableStatusError(source_label, message, status)
        raise FetchError(source_label, message, status_code=status)


def _parse_retry_after(response: httpx.Response) -> float | None:
    """Extract a back-off duration from a 429 ``Retry-After`` header."""
    header = response.headers.get("retry-after", "")
    if not header:
        return None
    try:
        return max(float(header), 1.0)
    except ValueError:
        logger.debug("Could not parse Retry-After header %r", header)
        return None
