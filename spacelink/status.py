"""Hosted-space lifecycle polling."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any, Literal

import httpx

from .constants import HUB_URL, RE_DISABLED_DISCUSSION, SPACE_STATUS_ERROR_MSG
from .models import SpaceStatus
from .transport import SessionTransport

logger = logging.getLogger("spacelink.status")

SpaceReferenceKind = Literal["space_name", "subdomain"]

_PENDING_STAGES: dict[str, tuple[str, str]] = {
    "SLEEPING": ("sleeping", "Space is asleep. Reload the page to wake it up."),
    "STOPPED": ("sleeping", "Space is asleep. Reload the page to wake it up."),
    "BUILDING": ("building", "Space is building..."),
    "APP_STARTING": ("starting", "Space is starting..."),
}
_RUNNING_STAGES = frozenset({"RUNNING", "RUNNING_BUILDING"})


def space_status_url(space_id: str, kind: SpaceReferenceKind, *, hub_url: str = HUB_URL) -> str:
    if kind == "subdomain":
        return f"{hub_url}/api/spaces/by-subdomain/{space_id}"
    return f"{hub_url}/api/spaces/{space_id}"


async def discussions_enabled(transport: SessionTransport, space_id: str, *, hub_url: str = HUB_URL) -> bool:
    try:
        response = await transport.dispatch("HEAD", f"{hub_url}/api/spaces/{space_id}/discussions")
    except httpx.HTTPError:
        return False
    error = response.headers.get("x-error-message")
    if not response.is_success or (error and RE_DISABLED_DISCUSSION.search(error)):
        return False
    return True


async def _fetch_stage(transport: SessionTransport, url: str) -> tuple[str, str | None]:
    response = await transport.get(url)
    response.raise_for_status()
    payload: Any = response.json()
    stage = payload["runtime"]["stage"]
    return str(stage), payload.get("id")


async def poll_space_status(
    transport: SessionTransport,
    space_id: str,
    kind: SpaceReferenceKind,
    *,
    hub_url: str = HUB_URL,
    interval_s: float = 1.0,
    max_polls: int = 300,
) -> AsyncIterator[SpaceStatus]:
    """Yield the space's status until it is running or polling gives up.

    Sleeping, building and starting spaces are polled again after
    ``interval_s``. Running, paused and failed spaces end the sequence, as
    does a status request that cannot be fetched. When ``max_polls``
    observations pass without a terminal stage, a final ``error`` event with
    detail ``TIMEOUT`` is yielded.
    """
    url = space_status_url(space_id, kind, hub_url=hub_url)
    for attempt in range(max_polls):
        try:
            stage, space_name = await _fetch_stage(transport, url)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            logger.warning("space_status_unavailable", extra={"space_id": space_id, "error": str(exc)})
            yield SpaceStatus(
                status="error",
                load_status="error",
                message=SPACE_STATUS_ERROR_MSG,
                detail="NOT_FOUND",
            )
            return

        logger.info("space_status", extra={"space_id": space_id, "stage": stage, "attempt": attempt})
        if stage in _RUNNING_STAGES:
            yield SpaceStatus(status="running", load_status="complete", message="Space is running.", detail=stage)
            return
        if stage in _PENDING_STAGES:
            status, message = _PENDING_STAGES[stage]
            yield SpaceStatus(status=status, load_status="pending", message=message, detail=stage)
            if attempt + 1 < max_polls:
                await asyncio.sleep(interval_s)
            continue

        enabled = await discussions_enabled(transport, space_name or space_id, hub_url=hub_url)
        if stage == "PAUSED":
            yield SpaceStatus(
                status="paused",
                load_status="error",
                message=(
                    "This space has been paused by the author. If you would like to try this demo, "
                    "consider duplicating the space."
                ),
                detail=stage,
                discussions_enabled=enabled,
            )
        else:
            yield SpaceStatus(
                status="space_error",
                load_status="error",
                message="This space is experiencing an issue.",
                detail=stage,
                discussions_enabled=enabled,
            )
        return

    yield SpaceStatus(
        status="error",
        load_status="error",
        message=f"Space did not start after {max_polls} status checks.",
        detail="TIMEOUT",
    )


__all__ = ["SpaceReferenceKind", "discussions_enabled", "poll_space_status", "space_status_url"]
