"""Public package surface for spacelink."""

from __future__ import annotations

from .client import Client, ComponentPayload
from .config import ClientOptions, StatusCallback
from .errors import (
    ApiInfoUnavailableError,
    AuthenticationError,
    ComponentServerError,
    ConfigFetchError,
    ConfigNotFoundError,
    InvalidCredentialsError,
    MissingCredentialsError,
    NotConfiguredError,
    PredictionError,
    SpaceLinkError,
    SpaceMetadataError,
    SpaceNotReadyError,
    UnauthorizedError,
)
from .models import ApiInfo, AppConfig, EndpointInfo, PredictResult, SessionState, SpaceStatus
from .status import poll_space_status

__all__ = [
    "__version__",
    "ApiInfo",
    "ApiInfoUnavailableError",
    "AppConfig",
    "AuthenticationError",
    "Client",
    "ClientOptions",
    "ComponentPayload",
    "ComponentServerError",
    "ConfigFetchError",
    "ConfigNotFoundError",
    "EndpointInfo",
    "InvalidCredentialsError",
    "MissingCredentialsError",
    "NotConfiguredError",
    "PredictResult",
    "PredictionError",
    "SessionState",
    "SpaceLinkError",
    "SpaceMetadataError",
    "SpaceNotReadyError",
    "SpaceStatus",
    "StatusCallback",
    "UnauthorizedError",
    "poll_space_status",
]

__version__ = "0.1.0"
