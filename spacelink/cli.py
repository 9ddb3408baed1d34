"""spacelink command-line interface."""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import click

from .client import Client
from .config import ClientOptions
from .errors import SpaceLinkError
from .models import SpaceStatus

T = TypeVar("T")


def _echo_status(status: SpaceStatus) -> None:
    click.echo(f"… {status.status}: {status.message}", err=True)


def _build_options(hf_token: str | None, username: str | None, password: str | None) -> ClientOptions:
    auth = None
    if username is not None or password is not None:
        if username is None or password is None:
            raise click.UsageError("--username and --password must be given together.")
        auth = (username, password)
    return ClientOptions(hf_token=hf_token, auth=auth, status_callback=_echo_status)


def _run(app_reference: str, options: ClientOptions, action: Callable[[Client], Awaitable[T]]) -> T:
    async def _session() -> T:
        async with Client(app_reference, options) as client:
            return await action(client)

    return asyncio.run(_session())


def _emit(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _connection_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option("--password", default=None, help="Password for login-protected apps.")(func)
    func = click.option("--username", default=None, help="Username for login-protected apps.")(func)
    func = click.option(
        "--hf-token",
        envvar="HF_TOKEN",
        default=None,
        help="Access token for private spaces (defaults to $HF_TOKEN).",
    )(func)
    return func


@click.group()
@click.version_option()
def app() -> None:
    """spacelink CLI - inspect and call remote apps."""


@app.command()
@click.argument("app_reference")
@_connection_options
def config(app_reference: str, hf_token: str | None, username: str | None, password: str | None) -> None:
    """Print the resolved app config."""
    options = _build_options(hf_token, username, password)

    async def _config(client: Client) -> dict[str, Any]:
        assert client.config is not None
        return client.config.model_dump(mode="json")

    try:
        _emit(_run(app_reference, options, _config))
    except SpaceLinkError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)


@app.command()
@click.argument("app_reference")
@_connection_options
def api(app_reference: str, hf_token: str | None, username: str | None, password: str | None) -> None:
    """Print the app's API description."""
    options = _build_options(hf_token, username, password)

    async def _view_api(client: Client) -> dict[str, Any]:
        info = await client.view_api()
        return info.model_dump(mode="json")

    try:
        _emit(_run(app_reference, options, _view_api))
    except SpaceLinkError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)


@app.command()
@click.argument("app_reference")
@click.argument("component_id", type=int)
@click.argument("fn_name")
@click.option(
    "--data",
    default="[]",
    show_default=True,
    help="JSON list of values passed to the component function.",
)
@_connection_options
def call(
    app_reference: str,
    component_id: int,
    fn_name: str,
    data: str,
    hf_token: str | None,
    username: str | None,
    password: str | None,
) -> None:
    """Call a component's server function."""
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON ({e.msg})", param_hint="--data") from e
    if not isinstance(payload, list):
        raise click.BadParameter("must be a JSON list", param_hint="--data")
    options = _build_options(hf_token, username, password)

    async def _call(client: Client) -> Any:
        return await client.component_server(component_id, fn_name, payload)

    try:
        result = _run(app_reference, options, _call)
    except SpaceLinkError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    if result is None:
        click.echo("✗ Component server call failed.", err=True)
        sys.exit(1)
    _emit(result)


if __name__ == "__main__":  # pragma: no cover
    app()
