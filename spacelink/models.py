"""Typed views over the remote application's JSON documents."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SpaceLinkModel(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)


class SessionState(str, Enum):
    CONSTRUCTED = "constructed"
    AUTHENTICATING = "authenticating"
    RESOLVING_CONFIG = "resolving_config"
    RETRYING_NOT_READY = "retrying_not_ready"
    HEARTBEAT_SETUP = "heartbeat_setup"
    INTROSPECTING = "introspecting"
    READY = "ready"
    FAILED = "failed"


class ComponentProps(SpaceLinkModel):
    root_url: str | None = None


class ComponentInfo(SpaceLinkModel):
    id: int
    type: str | None = None
    props: ComponentProps = Field(default_factory=ComponentProps)


class Dependency(SpaceLinkModel):
    id: int | None = None
    # Apps send ``false`` for endpoints hidden from the API.
    api_name: str | bool | None = None


class AppConfig(SpaceLinkModel):
    root: str = ""
    path: str = ""
    version: str | None = None
    api_prefix: str = ""
    protocol: str | None = None
    space_id: str | None = None
    auth_required: bool = False
    connect_heartbeat: bool = False
    components: list[ComponentInfo] = Field(default_factory=list)
    dependencies: list[Dependency] = Field(default_factory=list)

    def find_component(self, component_id: int) -> ComponentInfo | None:
        for component in self.components:
            if component.id == component_id:
                return component
        return None


class SpaceStatus(SpaceLinkModel):
    """A single observation of the hosted space's lifecycle."""

    status: str
    message: str = ""
    load_status: str = "pending"
    detail: str | None = None
    discussions_enabled: bool | None = None


class ApiInfo(SpaceLinkModel):
    named_endpoints: dict[str, dict[str, Any]] = Field(default_factory=dict)
    unnamed_endpoints: dict[str, dict[str, Any]] = Field(default_factory=dict)

    def has_endpoint(self, endpoint: str | int) -> bool:
        if isinstance(endpoint, int):
            return str(endpoint) in self.unnamed_endpoints
        return endpoint in self.named_endpoints


class PredictResult(SpaceLinkModel):
    data: list[Any] = Field(default_factory=list)
    endpoint: str | int
    fn_index: int
    duration: float | None = None
    average_duration: float | None = None


@dataclass(frozen=True, slots=True)
class EndpointInfo:
    host: str
    http_scheme: str = "https"
    ws_scheme: str = "wss"
    space_id: str | None = None

    @property
    def base_url(self) -> str:
        return f"{self.http_scheme}://{self.host}"


__all__ = [
    "ApiInfo",
    "AppConfig",
    "ComponentInfo",
    "ComponentProps",
    "Dependency",
    "EndpointInfo",
    "PredictResult",
    "SessionState",
    "SpaceStatus",
]
