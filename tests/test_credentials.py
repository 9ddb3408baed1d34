from spacelink.credentials import CredentialStore, parse_cookies


def test_parse_cookie_header_preserves_order() -> None:
    assert parse_cookies("a=1; b=2") == ["a=1", "b=2"]


def test_parse_set_cookie_drops_attributes() -> None:
    raw = (
        "sid=abc; Path=/; HttpOnly; SameSite=lax, "
        "token=xyz; Expires=Wed, 21 Oct 2015 07:28:00 GMT; Max-Age=3600; Secure"
    )
    assert parse_cookies(raw) == ["sid=abc", "token=xyz"]


def test_parse_ignores_empty_and_valueless_pairs() -> None:
    assert parse_cookies("; =x; flag; a=") == []


def test_set_cookies_replaces_state_wholesale() -> None:
    store = CredentialStore()
    store.set_cookies("a=1; b=2")
    assert store.cookies == "a=1; b=2"
    assert store.cookie_headers() == {"Cookie": "a=1; b=2"}

    store.set_cookies("c=3")
    assert store.cookies == "c=3"

    store.set_cookies("")
    assert store.cookies is None
    assert store.cookie_headers() == {}


def test_session_hash_is_random_per_store() -> None:
    first, second = CredentialStore(), CredentialStore()
    assert first.session_hash != second.session_hash
    assert first.session_hash.isalnum()
    assert first.jwt is False


def test_auth_headers_only_with_token() -> None:
    assert CredentialStore.auth_headers("hf_x") == {"Authorization": "Bearer hf_x"}
    assert CredentialStore.auth_headers(None) == {}
    assert CredentialStore.auth_headers("") == {}
