"""
Sources of the login cookies attached to API requests.
"""

import logging
from typing import Dict, Mapping, Optional, Protocol

log = logging.getLogger(__name__)


class CredentialStore(Protocol):
    async def get_cookies(self) -> Mapping[str, str]: ...


def parse_cookie_string(raw: str) -> Dict[str, str]:
    """
    Parses a `name=value; name2=value2` string as copied from a browser.

    Fragments without a name or value are ignored.
    """
    cookies = {}
    for fragment in raw.split(";"):
        name, sep, value = fragment.strip().partition("=")
        name, value = name.strip(), value.strip()
        if not sep or not name or not value:
            continue
        cookies[name] = value
    return cookies


class StaticCredentialStore:
    """In-memory credential store, typically filled from the config file."""

    def __init__(self, cookies: Optional[Mapping[str, str]] = None):
        self._cookies: Dict[str, str] = dict(cookies or {})

    async def get_cookies(self) -> Mapping[str, str]:
        return dict(self._cookies)

    def update(self, cookies: Mapping[str, str]) -> None:
        self._cookies.update(cookies)

    def clear(self) -> None:
        self._cookies.clear()
