"""Session orchestration for one remote, possibly cold-starting, app."""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Mapping, Sequence
from contextlib import aclosing
from typing import Any

import httpx

from .auth import get_jwt, login
from .config import ClientOptions
from .constants import BROKEN_CONNECTION_MSG, COMPONENT_SERVER_PATH, SPACE_LOAD_ERROR_MSG
from .credentials import CredentialStore
from .endpoint import is_space_name, process_endpoint
from .errors import (
    ApiInfoUnavailableError,
    ComponentServerError,
    ConfigNotFoundError,
    NotConfiguredError,
    PredictionError,
    SpaceLinkError,
    SpaceNotReadyError,
)
from .heartbeat import HeartbeatChannel, heartbeat_url
from .models import ApiInfo, AppConfig, EndpointInfo, PredictResult, SessionState, SpaceStatus
from .resolver import fetch_api_info, fetch_config, join_urls, map_names_to_ids, upgrade_root_scheme
from .status import poll_space_status
from .transport import SessionTransport

logger = logging.getLogger("spacelink.client")

ComponentPayload = Sequence[Any] | Mapping[str, Any]

_CORRELATION_FIELDS = ("component_id", "fn_name", "session_hash")


def _form_part(key: str, value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return (key, bytes(value), "application/octet-stream")
    if isinstance(value, tuple) or hasattr(value, "read"):
        return value
    if isinstance(value, str):
        return (None, value)
    return (None, json.dumps(value))


def _multipart_parts(
    payload: Mapping[str, Any],
    *,
    component_id: int,
    fn_name: str,
    session_hash: str,
) -> list[tuple[str, Any]]:
    parts = [
        (key, _form_part(key, value))
        for key, value in payload.items()
        if key != "binary" and key not in _CORRELATION_FIELDS
    ]
    parts.append(("component_id", (None, str(component_id))))
    parts.append(("fn_name", (None, fn_name)))
    parts.append(("session_hash", (None, session_hash)))
    return parts


class Client:
    """A session bound to one remote app.

    Construction is side-effect free; :meth:`connect` authenticates, resolves
    the app config (waiting for a sleeping space to start when a status
    callback is supplied), opens the heartbeat stream and fetches the API
    description. Every request made by the session carries the same
    ``session_hash`` and the stored cookies.
    """

    def __init__(self, app_reference: str, options: ClientOptions | None = None) -> None:
        self.app_reference = app_reference
        self.options = options or ClientOptions()
        self.credentials = CredentialStore()
        self.transport = SessionTransport(
            self.credentials,
            client=self.options.http_client,
            http_transport=self.options.http_transport,
            stream_factory=self.options.stream_factory,
            headers=self.options.headers,
            timeout_s=self.options.timeout_s,
        )
        self.heartbeat = HeartbeatChannel(self.transport)
        self.state = SessionState.CONSTRUCTED
        self.endpoint: EndpointInfo | None = None
        self.config: AppConfig | None = None
        self.api_map: dict[str, int] = {}
        self.api_info: ApiInfo | None = None
        self.last_status: SpaceStatus | None = None
        self._closed = False

    @classmethod
    async def connect(
        cls,
        app_reference: str,
        options: ClientOptions | None = None,
        **option_kwargs: Any,
    ) -> Client:
        if options is not None and option_kwargs:
            raise TypeError("Pass either a ClientOptions instance or keyword options, not both")
        client = cls(app_reference, options or ClientOptions(**option_kwargs))
        await client._connect_or_close()
        return client

    async def __aenter__(self) -> Client:
        if self.state is SessionState.CONSTRUCTED:
            await self._connect_or_close()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def session_hash(self) -> str:
        return self.credentials.session_hash

    @property
    def jwt(self) -> str | bool:
        return self.credentials.jwt

    # ------------------------------------------------------------------
    # Connection sequence
    # ------------------------------------------------------------------

    def _transition(self, state: SessionState) -> None:
        previous, self.state = self.state, state
        logger.info(
            "session_state",
            extra={"from_state": previous.value, "to_state": state.value, "session_hash": self.session_hash},
        )

    async def _connect_or_close(self) -> None:
        try:
            await self._init()
        except Exception:
            await self.close()
            raise

    async def _init(self) -> None:
        try:
            if self.options.auth is not None:
                self._transition(SessionState.AUTHENTICATING)
                await self._resolve_cookies()
            await self._resolve_config()
        except Exception:
            self._transition(SessionState.FAILED)
            raise

    async def _resolve_endpoint(self) -> EndpointInfo:
        if self.endpoint is None:
            self.endpoint = await process_endpoint(
                self.app_reference,
                self.transport,
                hf_token=self.options.hf_token,
                hub_url=self.options.hub_url,
            )
        return self.endpoint

    async def _resolve_cookies(self) -> None:
        assert self.options.auth is not None
        endpoint = await self._resolve_endpoint()
        username, password = self.options.auth
        raw_cookies = await login(
            self.transport,
            endpoint.base_url,
            username,
            password,
            hf_token=self.options.hf_token,
        )
        if raw_cookies:
            self.set_cookies(raw_cookies)

    async def _fetch_config(self, endpoint: EndpointInfo) -> AppConfig:
        return await fetch_config(
            self.transport,
            endpoint.base_url,
            hf_token=self.options.hf_token,
            has_login=self.options.auth is not None,
        )

    async def _resolve_config(self) -> None:
        self._transition(SessionState.RESOLVING_CONFIG)
        endpoint = await self._resolve_endpoint()
        try:
            config = await self._fetch_config(endpoint)
        except ConfigNotFoundError as exc:
            config = await self._recover_not_ready(endpoint, exc)
        await self._config_success(config)

    async def _recover_not_ready(self, endpoint: EndpointInfo, error: ConfigNotFoundError) -> AppConfig:
        if not endpoint.space_id or self.options.status_callback is None:
            await self._report_load_error()
            raise error

        self._transition(SessionState.RETRYING_NOT_READY)
        kind = "space_name" if is_space_name(endpoint.space_id) else "subdomain"
        events = poll_space_status(
            self.transport,
            endpoint.space_id,
            kind,
            hub_url=self.options.hub_url,
            interval_s=self.options.status_poll_interval_s,
            max_polls=self.options.max_status_polls,
        )
        async with aclosing(events):
            async for status in events:
                config = await self._handle_space_status(endpoint, status)
                if config is not None:
                    return config

        last = self.last_status
        raise SpaceNotReadyError(
            endpoint.space_id,
            status=last.status if last else "unknown",
            detail=last.message if last else None,
        ) from error

    async def _handle_space_status(self, endpoint: EndpointInfo, status: SpaceStatus) -> AppConfig | None:
        self.last_status = status
        await self._emit_status(status)
        if status.status != "running":
            return None
        try:
            return await self._fetch_config(endpoint)
        except SpaceLinkError:
            await self._report_load_error()
            raise

    async def _emit_status(self, status: SpaceStatus) -> None:
        callback = self.options.status_callback
        if callback is None:
            return
        result = callback(status)
        if inspect.isawaitable(result):
            await result

    async def _report_load_error(self) -> None:
        await self._emit_status(
            SpaceStatus(
                status="error",
                message=SPACE_LOAD_ERROR_MSG,
                load_status="error",
                detail="NOT_FOUND",
            )
        )

    def _set_config(self, config: AppConfig) -> None:
        # Config, API map and introspection are swapped together.
        api_map = map_names_to_ids(config.dependencies)
        self.config, self.api_map, self.api_info = config, api_map, None

    async def _config_success(self, config: AppConfig) -> None:
        config = upgrade_root_scheme(config, secure=self.options.secure_context)
        if not config.connect_heartbeat:
            await self.heartbeat.close()
        self._set_config(config)

        self._transition(SessionState.HEARTBEAT_SETUP)
        await self._resolve_heartbeat(config)

        if config.auth_required:
            self._transition(SessionState.READY)
            return

        self._transition(SessionState.INTROSPECTING)
        try:
            api_info = await fetch_api_info(self.transport, config, hf_token=self.options.hf_token)
        except ApiInfoUnavailableError as exc:
            logger.warning("api_info_unavailable", extra={"root": config.root, "error": str(exc)})
        else:
            self.api_info = api_info
        self._transition(SessionState.READY)

    async def _resolve_heartbeat(self, config: AppConfig) -> None:
        if not config.connect_heartbeat or self.heartbeat.is_open:
            return
        if config.space_id and self.options.hf_token and self.credentials.jwt is False:
            self.credentials.jwt = await get_jwt(
                self.transport,
                config.space_id,
                self.options.hf_token,
                hub_url=self.options.hub_url,
            )
        await self.heartbeat.open(heartbeat_url(config.root, self.session_hash, self.credentials.jwt))

    # ------------------------------------------------------------------
    # Bound operations
    # ------------------------------------------------------------------

    def _require_config(self) -> AppConfig:
        if self._closed or self.config is None or self.state is not SessionState.READY:
            raise NotConfiguredError()
        return self.config

    async def view_api(self) -> ApiInfo:
        """Return the app's API description, fetching it if it is not cached."""
        config = self._require_config()
        if self.api_info is not None:
            return self.api_info
        api_info = await fetch_api_info(self.transport, config, hf_token=self.options.hf_token)
        if self.config is config:
            self.api_info = api_info
        return api_info

    async def post_data(
        self,
        url: str,
        body: Any,
        additional_headers: Mapping[str, str] | None = None,
    ) -> tuple[Any, int]:
        headers = {**self.options.bearer_headers(), **(additional_headers or {})}
        try:
            response = await self.transport.post(url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("post_data_failed", extra={"url": url, "error": str(exc)})
            return {"error": BROKEN_CONNECTION_MSG}, 500
        try:
            output = response.json()
        except ValueError:
            output = {"error": response.text or BROKEN_CONNECTION_MSG}
        return output, response.status_code

    def _resolve_target(self, config: AppConfig, endpoint: str | int) -> tuple[int, str | None]:
        if isinstance(endpoint, int):
            for dependency in config.dependencies:
                if dependency.id == endpoint:
                    api_name = dependency.api_name if isinstance(dependency.api_name, str) else None
                    return endpoint, api_name
            raise PredictionError(endpoint, "Unknown function index.")
        api_name = endpoint.lstrip("/")
        fn_index = self.api_map.get(api_name)
        if fn_index is None:
            raise PredictionError(endpoint, "Unknown API name.")
        return fn_index, api_name

    async def predict(
        self,
        endpoint: str | int,
        data: Sequence[Any] = (),
        event_data: Any | None = None,
    ) -> PredictResult:
        """Run ``endpoint`` once, outside the queue, and return its output."""
        config = self._require_config()
        if self.api_info is None:
            raise ApiInfoUnavailableError("The API description was not loaded for this session.")
        fn_index, api_name = self._resolve_target(config, endpoint)
        exposed = f"/{api_name}" if isinstance(endpoint, str) else endpoint
        if not self.api_info.has_endpoint(exposed):
            raise PredictionError(endpoint, "Endpoint is not exposed by the app API.")

        url = join_urls(config.root, config.api_prefix, "run", api_name or "predict")
        body = {
            "data": list(data),
            "fn_index": fn_index,
            "event_data": event_data,
            "trigger_id": None,
            "session_hash": self.session_hash,
        }
        output, status_code = await self.post_data(url, body)
        if not isinstance(output, Mapping):
            raise PredictionError(endpoint, "Unexpected response payload.", status_code=status_code)
        if status_code != 200:
            raise PredictionError(endpoint, output.get("error"), status_code=status_code)
        return PredictResult(
            data=output.get("data") or [],
            endpoint=endpoint,
            fn_index=fn_index,
            duration=output.get("duration"),
            average_duration=output.get("average_duration"),
        )

    async def component_server(self, component_id: int, fn_name: str, data: ComponentPayload) -> Any | None:
        """Call ``fn_name`` on a component's server-side handler.

        ``data`` is either a list of values, sent as JSON, or a
        ``{"binary": True, "data": {...}}`` envelope, sent as a multipart form.
        Failed calls are logged and return ``None``.
        """
        config = self._require_config()
        component = config.find_component(component_id)
        root_url = component.props.root_url if component and component.props.root_url else config.root
        url = join_urls(root_url, COMPONENT_SERVER_PATH) + "/"
        headers = self.options.bearer_headers()

        request_kwargs: dict[str, Any]
        if isinstance(data, Mapping) and "binary" in data:
            request_kwargs = {
                "files": _multipart_parts(
                    data.get("data") or {},
                    component_id=component_id,
                    fn_name=fn_name,
                    session_hash=self.session_hash,
                )
            }
        else:
            request_kwargs = {
                "json": {
                    "data": data,
                    "component_id": component_id,
                    "fn_name": fn_name,
                    "session_hash": self.session_hash,
                }
            }

        try:
            response = await self.transport.post(url, headers=headers, **request_kwargs)
            if not response.is_success:
                raise ComponentServerError(response.status_code, response.reason_phrase)
            return response.json()
        except (ComponentServerError, httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "component_server_failed",
                extra={"component_id": component_id, "fn_name": fn_name, "error": str(exc)},
            )
            return None

    def set_cookies(self, raw_cookies: str) -> None:
        self.credentials.set_cookies(raw_cookies)

    async def close(self) -> None:
        self._closed = True
        await self.heartbeat.close()
        await self.transport.aclose()


__all__ = ["Client", "ComponentPayload"]
