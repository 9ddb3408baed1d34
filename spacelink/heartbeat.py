from __future__ import annotations

import logging
from urllib.parse import urlencode

from .constants import HEARTBEAT_PATH, HEARTBEAT_SIGN_PARAM
from .resolver import join_urls
from .transport import EventStream, SessionTransport

logger = logging.getLogger("spacelink.heartbeat")


def heartbeat_url(root: str, session_hash: str, jwt: str | bool = False) -> str:
    url = join_urls(root, HEARTBEAT_PATH, session_hash)
    if isinstance(jwt, str) and jwt:
        url = f"{url}?{urlencode({HEARTBEAT_SIGN_PARAM: jwt})}"
    return url


class HeartbeatChannel:
    """At most one long-lived event stream that keeps the session alive."""

    def __init__(self, transport: SessionTransport) -> None:
        self._transport = transport
        self._stream: EventStream | None = None
        self.url: str | None = None

    @property
    def is_open(self) -> bool:
        return self._stream is not None and not self._stream.closed

    async def open(self, url: str) -> bool:
        """Open the stream at ``url``; a no-op while a live stream is held.

        A stream the server has ended is released and opened again.
        """
        if self.is_open:
            logger.debug("heartbeat_already_open")
            return False
        if self._stream is not None:
            logger.info("heartbeat_reopening", extra={"url": url.partition("?")[0]})
            await self.close()
        try:
            self._stream = await self._transport.open_stream(url)
        except Exception as exc:
            logger.warning("heartbeat_open_failed", extra={"url": url.partition("?")[0], "error": str(exc)})
            return False
        self.url = url
        logger.info("heartbeat_opened", extra={"url": url.partition("?")[0]})
        return True

    async def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        self.url = None
        await stream.close()
        logger.info("heartbeat_closed")


__all__ = ["HeartbeatChannel", "heartbeat_url"]
