from __future__ import annotations

from typing import Any

from .constants import (
    API_INFO_ERROR_MSG,
    COMPONENT_SERVER_ERROR_MSG,
    CONFIG_ERROR_MSG,
    INVALID_CREDENTIALS_MSG,
    MISSING_CREDENTIALS_MSG,
    NOT_CONFIGURED_MSG,
    SPACE_METADATA_ERROR_MSG,
    UNAUTHORIZED_MSG,
)


class SpaceLinkError(Exception):
    def __init__(
        self,
        message: str,
        *,
        detail: str | None = None,
        status_code: int | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"{message} {detail}" if detail else message)
        self.message = message
        self.detail = detail
        self.status_code = status_code
        self.extra = extra or {}


class NotConfiguredError(SpaceLinkError):
    def __init__(self) -> None:
        super().__init__(NOT_CONFIGURED_MSG)


class AuthenticationError(SpaceLinkError):
    pass


class MissingCredentialsError(AuthenticationError):
    def __init__(self) -> None:
        super().__init__(MISSING_CREDENTIALS_MSG, status_code=401)


class InvalidCredentialsError(AuthenticationError):
    def __init__(self) -> None:
        super().__init__(INVALID_CREDENTIALS_MSG, status_code=401)


class UnauthorizedError(AuthenticationError):
    def __init__(self, detail: str | None = None) -> None:
        super().__init__(UNAUTHORIZED_MSG, detail=detail, status_code=401)


class SpaceMetadataError(SpaceLinkError):
    def __init__(self, app_reference: str, detail: str | None = None) -> None:
        super().__init__(SPACE_METADATA_ERROR_MSG, detail=detail, extra={"app_reference": app_reference})


class ConfigFetchError(SpaceLinkError):
    def __init__(self, detail: str | None = None, *, status_code: int | None = None) -> None:
        super().__init__(CONFIG_ERROR_MSG, detail=detail, status_code=status_code)


class ConfigNotFoundError(ConfigFetchError):
    """The endpoint answered, but has no usable config yet."""


class SpaceNotReadyError(SpaceLinkError):
    def __init__(self, space_id: str, *, status: str, detail: str | None = None) -> None:
        super().__init__(
            f"Space '{space_id}' is not running (status: {status}).",
            detail=detail,
            extra={"space_id": space_id, "status": status},
        )
        self.space_id = space_id
        self.status = status


class ApiInfoUnavailableError(SpaceLinkError):
    def __init__(self, detail: str | None = None) -> None:
        super().__init__(API_INFO_ERROR_MSG, detail=detail)


class ComponentServerError(SpaceLinkError):
    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(f"{COMPONENT_SERVER_ERROR_MSG}: {reason}", status_code=status_code)


class PredictionError(SpaceLinkError):
    def __init__(self, endpoint: str | int, detail: str | None = None, *, status_code: int | None = None) -> None:
        super().__init__(
            f"Prediction on endpoint '{endpoint}' failed.",
            detail=detail,
            status_code=status_code,
            extra={"endpoint": endpoint},
        )


__all__ = [
    "ApiInfoUnavailableError",
    "AuthenticationError",
    "ComponentServerError",
    "ConfigFetchError",
    "ConfigNotFoundError",
    "InvalidCredentialsError",
    "MissingCredentialsError",
    "NotConfiguredError",
    "PredictionError",
    "SpaceLinkError",
    "SpaceMetadataError",
    "SpaceNotReadyError",
    "UnauthorizedError",
]
