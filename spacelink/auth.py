from __future__ import annotations

import logging

import httpx

from .constants import HUB_URL, LOGIN_PATH
from .credentials import CredentialStore
from .errors import AuthenticationError, InvalidCredentialsError
from .resolver import join_urls
from .transport import SessionTransport

logger = logging.getLogger("spacelink.auth")


async def login(
    transport: SessionTransport,
    base_url: str,
    username: str,
    password: str,
    *,
    hf_token: str | None = None,
) -> str | None:
    """Log into a password-protected app and return its raw ``Set-Cookie`` value."""
    headers = CredentialStore.auth_headers(hf_token)
    try:
        response = await transport.post(
            join_urls(base_url, LOGIN_PATH),
            data={"username": username, "password": password},
            headers=headers,
        )
    except httpx.HTTPError as exc:
        raise AuthenticationError("Could not reach the login endpoint.", detail=str(exc)) from exc

    if response.status_code == 401:
        raise InvalidCredentialsError()
    if response.status_code != 200:
        raise AuthenticationError(
            "Login request failed.",
            detail=f"status {response.status_code}",
            status_code=response.status_code,
        )
    set_cookies = response.headers.get_list("set-cookie")
    if not set_cookies:
        return None
    return ", ".join(set_cookies)


async def get_jwt(
    transport: SessionTransport,
    space_id: str,
    hf_token: str,
    *,
    hub_url: str = HUB_URL,
) -> str | bool:
    """Exchange ``hf_token`` for a short-lived space session token.

    Returns ``False`` whenever no token can be obtained.
    """
    try:
        response = await transport.get(
            f"{hub_url}/api/spaces/{space_id}/jwt",
            headers=CredentialStore.auth_headers(hf_token),
        )
        if not response.is_success:
            logger.info("jwt_unavailable", extra={"space_id": space_id, "status": response.status_code})
            return False
        token = response.json().get("token")
    except (httpx.HTTPError, ValueError, AttributeError) as exc:
        logger.info("jwt_unavailable", extra={"space_id": space_id, "error": str(exc)})
        return False
    return token if isinstance(token, str) and token else False


__all__ = ["get_jwt", "login"]
