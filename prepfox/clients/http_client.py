"""Async HTTP client that classifies failures where they happen."""

import asyncio
import logging
from typing import Any

import aiohttp

from prepfox.config import Settings
from prepfox.errors import EnhancedError, OperationContext

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


class HttpClient:
    """Thin aiohttp wrapper for marketplace, shipping and billing APIs.

    Failures are raised as EnhancedError with the retryable flag already
    set, so with_retry never has to guess from the message:
    - 408/429/5xx gateway errors and connection/timeout errors are retryable
    - any other error status is not

    Usage:
        client = HttpClient(settings)
        await client.initialize()

        context = OperationContext.create("fetch_orders", "shopify")
        orders = await with_retry(
            lambda: client.request_json("GET", url, context, headers=headers),
            policy,
            context,
        )

        await client.close()
    """

    def __init__(self, settings: Settings, session: aiohttp.ClientSession | None = None) -> None:
        """Initialize HTTP client.

        Args:
            settings: Application settings with the HTTP timeout
            session: Existing session to use instead of creating one
        """
        self._settings = settings
        self._session = session
        self._owns_session = session is None

    async def initialize(self) -> None:
        """Open the underlying session if one was not supplied."""
        if self._session is not None:
            return

        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self._settings.http_timeout_s)
        )
        self._owns_session = True

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "HttpClient":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("HttpClient not initialized. Call initialize() first.")
        return self._session

    async def request_json(
        self,
        method: str,
        url: str,
        context: OperationContext,
        **kwargs: Any,
    ) -> Any:
        """Send a request and decode the JSON body.

        Args:
            method: HTTP method
            url: Absolute URL
            context: Attribution for any error raised
            **kwargs: Passed through to aiohttp (headers, params, json, ...)

        Returns:
            Decoded JSON body, or None for an empty response

        Raises:
            EnhancedError: On connection failure, timeout or error status
        """
        session = self._ensure_session()
        logger.debug(f"[{context.correlation_id}] {method} {url}")

        try:
            async with session.request(method, url, **kwargs) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise EnhancedError(
                        f"{method} {url} returned HTTP {response.status}: {body[:200]}",
                        context,
                        retryable=response.status in RETRYABLE_STATUSES,
                        metadata={"status": response.status},
                    )
                if response.status == 204 or response.content_length == 0:
                    return None
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise EnhancedError(
                        f"{method} {url} returned a non-JSON body", context, cause=e, retryable=False
                    ) from e
        except asyncio.TimeoutError as e:
            raise EnhancedError(
                f"{method} {url} timeout", context, cause=e, retryable=True
            ) from e
        except aiohttp.ClientConnectionError as e:
            raise EnhancedError(
                f"{method} {url} network error: {e}", context, cause=e, retryable=True
            ) from e
        except aiohttp.InvalidURL as e:
            raise EnhancedError(
                f"{method} {url} is not a valid URL", context, cause=e, retryable=False
            ) from e
