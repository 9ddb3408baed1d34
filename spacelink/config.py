from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from .constants import HUB_URL
from .credentials import CredentialStore
from .models import SpaceStatus

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    import httpx

    from .transport import EventStreamFactory

StatusCallback = Callable[[SpaceStatus], Union[Awaitable[None], None]]


@dataclass(slots=True)
class ClientOptions:
    """Connection options for :class:`spacelink.Client`.

    ``http_client`` and ``stream_factory`` override the transport; an injected
    client stays owned by the caller and is never closed by the session.
    ``http_transport`` is only used for the client the session creates itself.
    ``secure_context`` declares that the caller itself runs over https, in which
    case the resolved root URL is upgraded from ``http://`` to ``https://``.
    """

    hf_token: str | None = None
    auth: tuple[str, str] | None = None
    status_callback: StatusCallback | None = None
    http_client: httpx.AsyncClient | None = None
    http_transport: httpx.AsyncBaseTransport | None = None
    stream_factory: EventStreamFactory | None = None
    secure_context: bool = False
    hub_url: str = HUB_URL
    timeout_s: float | None = 30.0
    status_poll_interval_s: float = 1.0
    max_status_polls: int = 300
    headers: Mapping[str, str] | None = None

    def __post_init__(self) -> None:
        if self.auth is not None and len(self.auth) != 2:
            raise ValueError("auth must be a (username, password) pair")
        if self.max_status_polls < 1:
            raise ValueError("max_status_polls must be >= 1")
        if self.status_poll_interval_s < 0:
            raise ValueError("status_poll_interval_s must be >= 0")
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ValueError("timeout_s must be positive")
        self.hub_url = self.hub_url.rstrip("/")

    def bearer_headers(self) -> dict[str, str]:
        return CredentialStore.auth_headers(self.hf_token)


__all__ = ["ClientOptions", "StatusCallback"]
