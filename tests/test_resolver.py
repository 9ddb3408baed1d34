import httpx
import pytest
import pytest_asyncio

from spacelink.credentials import CredentialStore
from spacelink.errors import (
    ApiInfoUnavailableError,
    ConfigFetchError,
    ConfigNotFoundError,
    InvalidCredentialsError,
    MissingCredentialsError,
    UnauthorizedError,
)
from spacelink.models import AppConfig, Dependency
from spacelink.resolver import (
    fetch_api_info,
    fetch_config,
    join_urls,
    map_names_to_ids,
    upgrade_root_scheme,
)
from spacelink.transport import SessionTransport

from conftest import SPACE_URL


@pytest_asyncio.fixture()
async def transport(fake_space):
    transport = SessionTransport(CredentialStore(), http_transport=fake_space.transport())
    yield transport
    await transport.aclose()


def test_join_urls() -> None:
    assert join_urls("http://a.test/", "/config") == "http://a.test/config"
    assert join_urls("http://a.test", "", "/gradio_api/", "info") == "http://a.test/gradio_api/info"


@pytest.mark.asyncio
async def test_fetch_config_sets_root_and_fills_ids(transport) -> None:
    config = await fetch_config(transport, SPACE_URL)
    assert config.root == SPACE_URL
    assert config.path == ""
    assert [dep.id for dep in config.dependencies] == [0, 7, 2]
    assert config.find_component(2).props.root_url == "http://components.test"


@pytest.mark.asyncio
async def test_fetch_config_keeps_unknown_keys(fake_space, transport) -> None:
    fake_space.config["theme"] = "soft"
    config = await fetch_config(transport, SPACE_URL)
    assert config.model_extra["theme"] == "soft"


@pytest.mark.asyncio
async def test_non_success_status_is_not_ready(fake_space, transport) -> None:
    fake_space.queue_config_statuses(503)
    with pytest.raises(ConfigNotFoundError) as excinfo:
        await fetch_config(transport, SPACE_URL)
    assert excinfo.value.status_code == 503


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("hf_token", "has_login", "error"),
    [
        (None, False, MissingCredentialsError),
        (None, True, InvalidCredentialsError),
        ("hf_x", False, UnauthorizedError),
    ],
)
async def test_unauthorized_config_is_an_authentication_failure(
    fake_space, transport, hf_token, has_login, error
) -> None:
    fake_space.queue_config_statuses(401)
    with pytest.raises(error):
        await fetch_config(transport, SPACE_URL, hf_token=hf_token, has_login=has_login)


@pytest.mark.asyncio
async def test_network_failure_is_surfaced_not_treated_as_not_ready() -> None:
    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    transport = SessionTransport(CredentialStore(), http_transport=httpx.MockTransport(_refuse))
    try:
        with pytest.raises(ConfigFetchError) as excinfo:
            await fetch_config(transport, SPACE_URL)
    finally:
        await transport.aclose()
    assert not isinstance(excinfo.value, ConfigNotFoundError)


@pytest.mark.asyncio
async def test_invalid_json_is_a_fetch_error() -> None:
    transport = SessionTransport(
        CredentialStore(),
        http_transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")),
    )
    try:
        with pytest.raises(ConfigFetchError):
            await fetch_config(transport, SPACE_URL)
    finally:
        await transport.aclose()


def test_scheme_upgrade_is_one_way() -> None:
    config = AppConfig(root="http://space.test")
    upgraded = upgrade_root_scheme(config, secure=True)
    assert upgraded.root == "https://space.test"
    assert config.root == "http://space.test"
    assert upgrade_root_scheme(config, secure=False) is config

    secure = AppConfig(root="https://space.test")
    assert upgrade_root_scheme(secure, secure=False).root == "https://space.test"


def test_map_names_to_ids_skips_hidden_endpoints() -> None:
    deps = [
        Dependency(id=0, api_name="predict"),
        Dependency(id=1, api_name=False),
        Dependency(id=2, api_name=None),
        Dependency(id=3, api_name="greet"),
    ]
    assert map_names_to_ids(deps) == {"predict": 0, "greet": 3}


@pytest.mark.asyncio
async def test_fetch_api_info_aliases_predict(fake_space, transport) -> None:
    config = await fetch_config(transport, SPACE_URL)
    info = await fetch_api_info(transport, config)
    assert info.unnamed_endpoints["0"] == info.named_endpoints["/predict"]
    assert info.has_endpoint("/greet")
    assert info.has_endpoint(0)


@pytest.mark.asyncio
async def test_fetch_api_info_unwraps_api_envelope(fake_space, transport) -> None:
    fake_space.api_info = {"api": {"named_endpoints": {"/x": {}}, "unnamed_endpoints": {}}}
    config = await fetch_config(transport, SPACE_URL)
    info = await fetch_api_info(transport, config)
    assert list(info.named_endpoints) == ["/x"]


@pytest.mark.asyncio
async def test_fetch_api_info_failure(fake_space, transport) -> None:
    fake_space.api_info = None
    config = await fetch_config(transport, SPACE_URL)
    with pytest.raises(ApiInfoUnavailableError):
        await fetch_api_info(transport, config)
