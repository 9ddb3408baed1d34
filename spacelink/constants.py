"""Fixed paths, patterns and user-facing messages."""

from __future__ import annotations

import re

HUB_URL = "https://huggingface.co"

CONFIG_PATH = "/config"
API_INFO_PATH = "/info"
HEARTBEAT_PATH = "/heartbeat"
COMPONENT_SERVER_PATH = "/component_server/"
LOGIN_PATH = "/login"

HEARTBEAT_SIGN_PARAM = "__sign"

RE_SPACE_NAME = re.compile(r"^[a-zA-Z0-9_\-\.]+/[a-zA-Z0-9_\-\.]+$")
RE_SPACE_DOMAIN = re.compile(r".*hf\.space/?.*$")
RE_DISABLED_DISCUSSION = re.compile(r"discussions are disabled", re.IGNORECASE)

CONFIG_ERROR_MSG = "Could not resolve app config."
SPACE_STATUS_ERROR_MSG = "Could not get space status."
SPACE_LOAD_ERROR_MSG = "Could not load this space."
API_INFO_ERROR_MSG = "Could not get API info."
SPACE_METADATA_ERROR_MSG = "Space metadata could not be loaded."
UNAUTHORIZED_MSG = "Not authorized to access this space."
MISSING_CREDENTIALS_MSG = "Login credentials are required to access this space."
INVALID_CREDENTIALS_MSG = "Invalid credentials. Could not login."
BROKEN_CONNECTION_MSG = "Connection errored out."
NOT_CONFIGURED_MSG = "Client is not configured. Call Client.connect() first."
COMPONENT_SERVER_ERROR_MSG = "Could not connect to component server"

__all__ = [
    "API_INFO_ERROR_MSG",
    "API_INFO_PATH",
    "BROKEN_CONNECTION_MSG",
    "COMPONENT_SERVER_ERROR_MSG",
    "COMPONENT_SERVER_PATH",
    "CONFIG_ERROR_MSG",
    "CONFIG_PATH",
    "HEARTBEAT_PATH",
    "HEARTBEAT_SIGN_PARAM",
    "HUB_URL",
    "INVALID_CREDENTIALS_MSG",
    "LOGIN_PATH",
    "MISSING_CREDENTIALS_MSG",
    "NOT_CONFIGURED_MSG",
    "RE_DISABLED_DISCUSSION",
    "RE_SPACE_DOMAIN",
    "RE_SPACE_NAME",
    "SPACE_LOAD_ERROR_MSG",
    "SPACE_METADATA_ERROR_MSG",
    "SPACE_STATUS_ERROR_MSG",
    "UNAUTHORIZED_MSG",
]
