"""Turn an app reference into a concrete scheme and host."""

from __future__ import annotations

from dataclasses import replace
from urllib.parse import urlsplit

import httpx

from .constants import HUB_URL, RE_SPACE_DOMAIN, RE_SPACE_NAME
from .credentials import CredentialStore
from .errors import SpaceMetadataError
from .models import EndpointInfo
from .transport import SessionTransport


def is_space_name(reference: str) -> bool:
    return bool(RE_SPACE_NAME.match(reference))


def determine_protocol(endpoint: str) -> EndpointInfo:
    if endpoint.startswith("http"):
        parsed = urlsplit(endpoint)
        scheme = parsed.scheme or "https"
        host = parsed.netloc
        if host.endswith("hf.space"):
            return EndpointInfo(host=host, http_scheme=scheme, ws_scheme="wss")
        path = parsed.path.rstrip("/")
        return EndpointInfo(
            host=host + path,
            http_scheme=scheme,
            ws_scheme="wss" if scheme == "https" else "ws",
        )
    if endpoint.startswith("file:"):
        return EndpointInfo(host="lite.local", http_scheme="http", ws_scheme="ws")
    return EndpointInfo(host=endpoint, http_scheme="https", ws_scheme="wss")


async def process_endpoint(
    app_reference: str,
    transport: SessionTransport,
    *,
    hf_token: str | None = None,
    hub_url: str = HUB_URL,
) -> EndpointInfo:
    """Resolve ``app_reference`` to an :class:`EndpointInfo`.

    Symbolic ``owner/name`` references are looked up on the hub; direct
    ``*.hf.space`` references carry their subdomain as ``space_id``. Other
    references are used as-is and have no space id.
    """
    reference = app_reference.strip().rstrip("/")
    if is_space_name(reference):
        headers = CredentialStore.auth_headers(hf_token)
        try:
            response = await transport.get(f"{hub_url}/api/spaces/{reference}/host", headers=headers)
            response.raise_for_status()
            host = response.json()["host"]
            if not isinstance(host, str) or not host:
                raise ValueError("hub returned no host")
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            raise SpaceMetadataError(reference, detail=str(exc)) from exc
        return replace(determine_protocol(host), space_id=reference)

    if RE_SPACE_DOMAIN.match(reference):
        resolved = determine_protocol(reference)
        subdomain = resolved.host.split("/")[0].replace(".hf.space", "")
        return replace(resolved, space_id=subdomain)

    return determine_protocol(reference)


__all__ = ["determine_protocol", "is_space_name", "process_endpoint"]
