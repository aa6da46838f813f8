"""Shared async HTTP helpers used across registry, repository and license clients.

Wraps a single ``aiohttp.ClientSession`` so collaborators share connection
pooling, timeouts and DEBUG traces. Transport failures are translated into
``UpstreamUnavailable`` with status 0; HTTP statuses are returned to callers,
which decide what counts as success. URLs are sent as already percent-encoded.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp
from yarl import URL

from constants import Constants
from errors import UpstreamUnavailable
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    """A fully read HTTP response."""
    url: str
    status: int
    text: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        return json.loads(self.text)


class HttpClient:
    """Async HTTP client with a lazily started session."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
        user_agent: str = Constants.USER_AGENT,
    ):
        """Initialize the client.

        Args:
            timeout: Total request timeout in seconds (defaults to Constants.REQUEST_TIMEOUT).
            session: Externally owned session; it is not closed by stop().
            user_agent: User-Agent header sent with every request.
        """
        seconds = timeout or Constants.REQUEST_TIMEOUT
        self._timeout = aiohttp.ClientTimeout(total=seconds)
        # Streamed bodies bound connecting and each read, not the total.
        self._stream_timeout = aiohttp.ClientTimeout(total=None, sock_connect=seconds, sock_read=seconds)
        self._session = session
        self._owns_session = session is None
        self._user_agent = user_agent

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"User-Agent": self._user_agent},
            )
            self._owns_session = True

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "HttpClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            await self.start()
        assert self._session is not None
        return self._session

    async def request(
        self,
        method: str,
        url: str,
        *,
        context: str,
        headers: Optional[Dict[str, str]] = None,
        data: Optional[Any] = None,
    ) -> HttpResponse:
        """Perform a request and read the whole body as text.

        Args:
            method: HTTP method.
            url: Target URL.
            context: Human-readable source tag for logs (e.g., "npm", "github").
            headers: Optional request headers.
            data: Optional request body.

        Raises:
            UpstreamUnavailable: When no response could be obtained.
        """
        session = await self._ensure_session()
        safe_target = safe_url(url)
        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="http_client",
                        action=method,
                        target=safe_target,
                        context=context,
                    ),
                )
            try:
                async with session.request(method, URL(url, encoded=True), headers=headers, data=data) as res:
                    text = await res.text(errors="replace")
                    result = HttpResponse(
                        url=str(res.url),
                        status=res.status,
                        text=text,
                        headers=dict(res.headers),
                    )
            except asyncio.TimeoutError as exc:
                logger.error(
                    "%s request timed out after %s seconds",
                    context,
                    self._timeout.total,
                )
                raise UpstreamUnavailable(url, 0, f"{context} request timed out") from exc
            except aiohttp.ClientError as exc:
                logger.error("%s connection error: %s", context, exc)
                raise UpstreamUnavailable(url, 0, f"{context} connection error: {exc}") from exc

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action=method,
                    outcome="success" if result.ok else "non_2xx",
                    status_code=result.status,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context,
                ),
            )
        return result

    async def get(self, url: str, *, context: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        return await self.request("GET", url, context=context, headers=headers)

    async def post(
        self,
        url: str,
        *,
        context: str,
        data: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> HttpResponse:
        return await self.request("POST", url, context=context, headers=headers, data=data)

    async def open_stream(self, url: str, *, context: str) -> aiohttp.ClientResponse:
        """Open a GET response without reading its body.

        The caller owns the returned response and must release it. Non-2xx
        responses are read, released and raised as UpstreamUnavailable. The
        request timeout bounds connecting and each read, not the whole body.
        """
        session = await self._ensure_session()
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP stream open",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_url(url),
                    context=context,
                ),
            )
        try:
            res = await session.get(URL(url, encoded=True), timeout=self._stream_timeout)
        except asyncio.TimeoutError as exc:
            raise UpstreamUnavailable(url, 0, f"{context} request timed out") from exc
        except aiohttp.ClientError as exc:
            raise UpstreamUnavailable(url, 0, f"{context} connection error: {exc}") from exc

        if not 200 <= res.status < 300:
            try:
                body = await res.text(errors="replace")
            finally:
                res.release()
            raise UpstreamUnavailable(url, res.status, body)
        return res
