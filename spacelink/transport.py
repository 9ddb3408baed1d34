"""HTTP and event-stream transport bound to one session's credentials."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from contextlib import suppress
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Any, Protocol

import httpx

from .credentials import CredentialStore

logger = logging.getLogger("spacelink.transport")


class EventStream(Protocol):
    """Handle of an open one-way event stream."""

    @property
    def closed(self) -> bool: ...

    async def close(self) -> None: ...


EventStreamFactory = Callable[["SessionTransport", str], Awaitable[EventStream]]


class HttpxEventStream:
    """Event stream backed by a streamed httpx response.

    The body is drained in a background task. When the server ends the body,
    the stream is requested again through ``reopen`` after a linear backoff;
    ``max_retries`` consecutive attempts that deliver no frame end the stream
    for good. Frames are not interpreted.
    """

    def __init__(
        self,
        response: httpx.Response,
        url: str,
        *,
        reopen: Callable[[], Awaitable[httpx.Response]] | None = None,
        retry_s: float = 1.0,
        max_retries: int = 3,
    ) -> None:
        self._response = response
        self._url = url
        self._reopen = reopen
        self._retry_s = retry_s
        self._max_retries = max_retries
        self._closed = False
        self._task: asyncio.Task[None] = asyncio.create_task(self._drain())

    @property
    def closed(self) -> bool:
        return self._closed

    async def _consume(self, response: httpx.Response) -> bool:
        received = False
        try:
            async for line in response.aiter_lines():
                if line.startswith("data:"):
                    received = True
                    logger.debug("event_stream_frame", extra={"url": self._url})
        except httpx.HTTPError as exc:
            logger.debug("event_stream_ended", extra={"url": self._url, "error": str(exc)})
        finally:
            await response.aclose()
        return received

    async def _reconnect(self) -> httpx.Response | None:
        assert self._reopen is not None
        try:
            return await self._reopen()
        except httpx.HTTPError as exc:
            logger.debug("event_stream_reconnect_failed", extra={"url": self._url, "error": str(exc)})
            return None

    async def _drain(self) -> None:
        response: httpx.Response | None = self._response
        failures = 0
        try:
            while True:
                if response is not None and await self._consume(response):
                    failures = 0
                else:
                    failures += 1
                if self._reopen is None or failures >= self._max_retries:
                    logger.info("event_stream_closed", extra={"url": self._url, "failures": failures})
                    return
                await asyncio.sleep(self._retry_s * (failures + 1))
                response = await self._reconnect()
                if response is not None:
                    self._response = response
        finally:
            self._closed = True

    async def close(self) -> None:
        if self._closed and self._task.done():
            return
        self._closed = True
        if not self._task.done():
            self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        await self._response.aclose()


async def _request_event_stream(transport: SessionTransport, url: str) -> httpx.Response:
    response = await transport.dispatch(
        "GET",
        url,
        headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
        stream=True,
    )
    if response.status_code >= 400:
        await response.aclose()
        raise httpx.HTTPStatusError(
            f"Event stream request failed ({response.status_code})",
            request=response.request,
            response=response,
        )
    return response


async def open_httpx_event_stream(transport: SessionTransport, url: str) -> EventStream:
    response = await _request_event_stream(transport, url)
    return HttpxEventStream(response, url, reopen=lambda: _request_event_stream(transport, url))


def _reject_all_cookies() -> CookieJar:
    return CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


class SessionTransport:
    """Single dispatch point for every request a session makes.

    Stored cookies are attached here and nowhere else. When no client is
    injected, an owned ``httpx.AsyncClient`` is created on first use with a
    cookie jar that ignores ``Set-Cookie`` responses.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        *,
        client: httpx.AsyncClient | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
        stream_factory: EventStreamFactory | None = None,
        headers: Mapping[str, str] | None = None,
        timeout_s: float | None = 30.0,
    ) -> None:
        self._credentials = credentials
        self._client = client
        self._owns_client = client is None
        self._http_transport = http_transport
        self._stream_factory = stream_factory or open_httpx_event_stream
        self._default_headers = dict(headers or {})
        self._timeout_s = timeout_s

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self._http_transport,
                timeout=self._timeout_s,
                follow_redirects=True,
                cookies=_reject_all_cookies(),
            )
        return self._client

    def _merge_headers(self, headers: Mapping[str, str] | None) -> httpx.Headers:
        merged = httpx.Headers(self._default_headers)
        if headers:
            merged.update(headers)
        cookie_headers = self._credentials.cookie_headers()
        if cookie_headers:
            merged.update(cookie_headers)
        return merged

    async def dispatch(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        stream: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        request = self.client.build_request(method, url, headers=self._merge_headers(headers), **kwargs)
        logger.debug("request_dispatch", extra={"method": method, "url": url, "stream": stream})
        return await self.client.send(request, stream=stream)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.dispatch("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.dispatch("POST", url, **kwargs)

    async def open_stream(self, url: str) -> EventStream:
        return await self._stream_factory(self, url)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            client, self._client = self._client, None
            await client.aclose()


__all__ = [
    "EventStream",
    "EventStreamFactory",
    "HttpxEventStream",
    "SessionTransport",
    "open_httpx_event_stream",
]
