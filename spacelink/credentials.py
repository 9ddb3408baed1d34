"""Per-session credential state and cookie parsing."""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass, field

# Split a folded Set-Cookie header on commas that start a new ``name=value``
# pair, leaving commas inside ``Expires`` dates alone.
_COOKIE_SPLIT = re.compile(r",(?=\s*[^\s=;,]+=[^\s=;]+)")

_COOKIE_ATTRIBUTES = frozenset(
    {
        "domain",
        "expires",
        "httponly",
        "max-age",
        "partitioned",
        "path",
        "priority",
        "samesite",
        "secure",
    }
)


def new_session_hash() -> str:
    return secrets.token_hex(6)


def parse_cookies(raw: str) -> list[str]:
    """Return the ``name=value`` pairs of a raw cookie header, in order."""
    cookies: list[str] = []
    for entry in _COOKIE_SPLIT.split(raw):
        for pair in entry.split(";"):
            name, sep, value = pair.partition("=")
            name = name.strip()
            value = value.strip()
            if not sep or not name or not value:
                continue
            if name.lower() in _COOKIE_ATTRIBUTES:
                continue
            cookies.append(f"{name}={value}")
    return cookies


@dataclass(slots=True)
class CredentialStore:
    session_hash: str = field(default_factory=new_session_hash)
    jwt: str | bool = False
    cookies: str | None = None

    def set_cookies(self, raw: str) -> None:
        joined = "; ".join(parse_cookies(raw))
        self.cookies = joined or None

    def cookie_headers(self) -> dict[str, str]:
        if not self.cookies:
            return {}
        return {"Cookie": self.cookies}

    @staticmethod
    def auth_headers(hf_token: str | None) -> dict[str, str]:
        if not hf_token:
            return {}
        return {"Authorization": f"Bearer {hf_token}"}


__all__ = ["CredentialStore", "new_session_hash", "parse_cookies"]
