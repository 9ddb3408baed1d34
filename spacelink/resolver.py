"""Config resolution and API introspection against a resolved host."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from .constants import API_INFO_PATH, CONFIG_PATH
from .credentials import CredentialStore
from .errors import (
    ApiInfoUnavailableError,
    ConfigFetchError,
    ConfigNotFoundError,
    InvalidCredentialsError,
    MissingCredentialsError,
    UnauthorizedError,
)
from .models import ApiInfo, AppConfig, Dependency
from .transport import SessionTransport


def join_urls(base: str, *parts: str) -> str:
    url = base.rstrip("/")
    for part in parts:
        stripped = part.strip("/") if part else ""
        if stripped:
            url = f"{url}/{stripped}"
    return url


def _fill_dependency_ids(payload: dict[str, Any]) -> None:
    dependencies = payload.get("dependencies")
    if not isinstance(dependencies, list):
        return
    for index, dependency in enumerate(dependencies):
        if isinstance(dependency, dict) and dependency.get("id") is None:
            dependency["id"] = index


async def fetch_config(
    transport: SessionTransport,
    base_url: str,
    *,
    hf_token: str | None = None,
    has_login: bool = False,
) -> AppConfig:
    """Fetch ``<base_url>/config``.

    Raises :class:`ConfigNotFoundError` when the host answers without a
    config (typically an app that is still starting) and
    :class:`ConfigFetchError` for network or payload failures.
    """
    headers = CredentialStore.auth_headers(hf_token)
    try:
        response = await transport.get(join_urls(base_url, CONFIG_PATH), headers=headers)
    except httpx.HTTPError as exc:
        raise ConfigFetchError(str(exc)) from exc

    if response.status_code == 401:
        if has_login:
            raise InvalidCredentialsError()
        if hf_token:
            raise UnauthorizedError("The access token was rejected.")
        raise MissingCredentialsError()
    if response.status_code != 200:
        raise ConfigNotFoundError(
            f"Config request returned {response.status_code}.",
            status_code=response.status_code,
        )

    try:
        payload = response.json()
    except json.JSONDecodeError as exc:
        raise ConfigFetchError("Config response is not valid JSON.", status_code=200) from exc
    if not isinstance(payload, dict):
        raise ConfigFetchError("Config response is not a JSON object.", status_code=200)

    payload["root"] = base_url
    if payload.get("path") is None:
        payload["path"] = ""
    _fill_dependency_ids(payload)
    try:
        return AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigFetchError(str(exc), status_code=200) from exc


def upgrade_root_scheme(config: AppConfig, *, secure: bool) -> AppConfig:
    if not secure or not config.root.startswith("http://"):
        return config
    return config.model_copy(update={"root": "https://" + config.root[len("http://") :]})


def map_names_to_ids(dependencies: Iterable[Dependency]) -> dict[str, int]:
    api_map: dict[str, int] = {}
    for dependency in dependencies:
        if isinstance(dependency.api_name, str) and dependency.api_name and dependency.id is not None:
            api_map[dependency.api_name] = dependency.id
    return api_map


def _normalize_api_info(payload: Mapping[str, Any]) -> dict[str, Any]:
    info = dict(payload)
    if isinstance(info.get("api"), Mapping):
        info = dict(info["api"])
    named = dict(info.get("named_endpoints") or {})
    unnamed = dict(info.get("unnamed_endpoints") or {})
    if "/predict" in named and "0" not in unnamed:
        unnamed["0"] = named["/predict"]
    info["named_endpoints"] = named
    info["unnamed_endpoints"] = unnamed
    return info


async def fetch_api_info(
    transport: SessionTransport,
    config: AppConfig,
    *,
    hf_token: str | None = None,
) -> ApiInfo:
    headers = {"Content-Type": "application/json", **CredentialStore.auth_headers(hf_token)}
    url = join_urls(config.root, config.api_prefix, API_INFO_PATH)
    try:
        response = await transport.get(url, headers=headers)
    except httpx.HTTPError as exc:
        raise ApiInfoUnavailableError(str(exc)) from exc
    if not response.is_success:
        raise ApiInfoUnavailableError(f"API info request returned {response.status_code}.")
    try:
        payload = response.json()
        return ApiInfo.model_validate(_normalize_api_info(payload))
    except (ValueError, TypeError, ValidationError) as exc:
        raise ApiInfoUnavailableError(str(exc)) from exc


__all__ = [
    "fetch_api_info",
    "fetch_config",
    "join_urls",
    "map_names_to_ids",
    "upgrade_root_scheme",
]
