from __future__ import annotations

import sys
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
import pytest
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse

# Ensure repository root is on sys.path for test imports.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from spacelink import ClientOptions  # noqa: E402

HUB_URL = "http://hub.test"
SPACE_URL = "http://space.test"


def default_config(**overrides: Any) -> dict[str, Any]:
    config: dict[str, Any] = {
        "version": "4.36.0",
        "components": [
            {"id": 1, "type": "textbox", "props": {}},
            {"id": 2, "type": "file_explorer", "props": {"root_url": "http://components.test"}},
        ],
        "dependencies": [
            {"api_name": "predict"},
            {"id": 7, "api_name": "greet"},
            {"api_name": False},
        ],
        "auth_required": False,
        "connect_heartbeat": False,
    }
    config.update(overrides)
    return config


def default_api_info() -> dict[str, Any]:
    return {
        "named_endpoints": {
            "/predict": {"parameters": [], "returns": []},
            "/greet": {"parameters": [{"label": "name"}], "returns": []},
        },
        "unnamed_endpoints": {},
    }


@dataclass
class RecordedRequest:
    method: str
    path: str
    headers: dict[str, str]
    query: dict[str, str]


@dataclass
class FakeSpace:
    """In-process stand-in for a hosted app and the hub that hosts it."""

    config: dict[str, Any] = field(default_factory=default_config)
    config_statuses: deque[int] = field(default_factory=deque)
    api_info: dict[str, Any] | None = field(default_factory=default_api_info)
    stages: deque[str] = field(default_factory=deque)
    space_host: str = "http://owner-space.test"
    jwt: str | None = "signed-jwt"
    login_user: tuple[str, str] = ("admin", "secret")
    component_status: int = 200
    requests: list[RecordedRequest] = field(default_factory=list)
    component_calls: list[dict[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.app = self._build_app()

    def queue_config_statuses(self, *statuses: int) -> None:
        self.config_statuses.extend(statuses)

    def queue_stages(self, *stages: str) -> None:
        self.stages.extend(stages)

    def paths(self, method: str | None = None) -> list[str]:
        return [req.path for req in self.requests if method is None or req.method == method]

    def count(self, path: str) -> int:
        return sum(1 for req in self.requests if req.path == path)

    def transport(self) -> httpx.ASGITransport:
        return httpx.ASGITransport(app=self.app)

    def options(self, **overrides: Any) -> ClientOptions:
        values: dict[str, Any] = {
            "http_transport": self.transport(),
            "hub_url": HUB_URL,
            "status_poll_interval_s": 0,
        }
        values.update(overrides)
        return ClientOptions(**values)

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        space = self

        @app.middleware("http")
        async def record(request: Request, call_next):
            space.requests.append(
                RecordedRequest(
                    method=request.method,
                    path=request.url.path,
                    headers={key.lower(): value for key, value in request.headers.items()},
                    query=dict(request.query_params),
                )
            )
            return await call_next(request)

        @app.get("/api/spaces/by-subdomain/{subdomain}")
        async def status_by_subdomain(subdomain: str) -> dict[str, Any]:
            stage = space.stages.popleft() if space.stages else "RUNNING"
            return {"id": f"owner/{subdomain}", "runtime": {"stage": stage}}

        @app.get("/api/spaces/{owner}/{name}/host")
        async def space_host(owner: str, name: str) -> dict[str, Any]:
            return {"subdomain": f"{owner}-{name}", "host": space.space_host}

        @app.get("/api/spaces/{owner}/{name}/jwt")
        async def space_jwt(owner: str, name: str, request: Request) -> Response:
            if space.jwt is None or not request.headers.get("authorization"):
                return JSONResponse({"error": "unauthorized"}, status_code=401)
            return JSONResponse({"token": space.jwt})

        @app.head("/api/spaces/{owner}/{name}/discussions")
        async def discussions(owner: str, name: str) -> Response:
            return Response(status_code=200)

        @app.get("/api/spaces/{owner}/{name}")
        async def space_status(owner: str, name: str) -> dict[str, Any]:
            stage = space.stages.popleft() if space.stages else "RUNNING"
            return {"id": f"{owner}/{name}", "runtime": {"stage": stage}}

        @app.get("/config")
        async def config() -> Response:
            status = space.config_statuses.popleft() if space.config_statuses else 200
            if status != 200:
                return JSONResponse({"detail": "not ready"}, status_code=status)
            return JSONResponse(space.config)

        @app.get("/info")
        async def info() -> Response:
            if space.api_info is None:
                return JSONResponse({"detail": "no api"}, status_code=500)
            return JSONResponse(space.api_info)

        @app.get("/heartbeat/{session_hash}")
        async def heartbeat(session_hash: str) -> StreamingResponse:
            async def frames():
                yield b"data: {}\n\n"

            return StreamingResponse(frames(), media_type="text/event-stream")

        @app.post("/login")
        async def login(request: Request) -> Response:
            form = await request.form()
            if (form.get("username"), form.get("password")) != space.login_user:
                return JSONResponse({"detail": "Incorrect credentials."}, status_code=401)
            response = JSONResponse({"success": True})
            response.set_cookie("access-token", "tok123", httponly=True)
            response.set_cookie("access-token-unsecure", "tok456")
            return response

        @app.post("/component_server/")
        async def component_server(request: Request) -> Response:
            if request.headers.get("content-type", "").startswith("multipart/form-data"):
                form = await request.form()
                call = {"kind": "multipart", "fields": {}, "files": {}}
                for key, value in form.multi_items():
                    if isinstance(value, str):
                        call["fields"][key] = value
                    else:
                        call["files"][key] = (await value.read()).decode()
            else:
                call = {"kind": "json", **(await request.json())}
            space.component_calls.append(call)
            if space.component_status != 200:
                return JSONResponse({"detail": "boom"}, status_code=space.component_status)
            return JSONResponse({"ok": True, "fn_name": call.get("fn_name") or call["fields"].get("fn_name")})

        @app.post("/run/{api_name}")
        async def run(api_name: str, request: Request) -> Response:
            body = await request.json()
            if api_name == "broken":
                return JSONResponse({"error": "It broke"}, status_code=500)
            return JSONResponse({"data": [f"{api_name}:{body['data']}"], "duration": 0.1, "average_duration": 0.2})

        return app


@pytest.fixture()
def fake_space() -> FakeSpace:
    return FakeSpace()
