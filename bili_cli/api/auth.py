"""
Resolves the cookies sent with each request: the stored login cookies when
present, otherwise a guest identity bootstrapped from the fingerprint endpoint.
"""

import json
import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional

from bili_cli.exceptions import ResponseFormatError
from bili_cli.storage.credentials import CredentialStore
from bili_cli.utils.expiring import ExpiringValue

from .constants import ANON_IDENTITY_TTL, FINGERPRINT_API_URL, FINGERPRINT_USER_AGENT

if TYPE_CHECKING:
    from .client import BiliAPIClient

log = logging.getLogger(__name__)

# Cookie name -> accepted field spellings in the fingerprint payload, in order
_FINGERPRINT_FIELDS = {
    "buvid3": ("b_3", "buvid3"),
    "buvid4": ("b_4", "buvid4"),
    "buvid_fp": ("buvid_fp",),
    "buvid_fp_plain": ("buvid_fp_plain",),
    "b_lsid": ("b_lsid",),
}


def _first_non_empty(data: Mapping[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def parse_fingerprint(payload: Mapping[str, Any]) -> Dict[str, str]:
    """
    Extracts the guest cookies from a fingerprint response.

    Blank values are left out of the result rather than mapped to "".
    """
    data = payload.get("data")
    if not isinstance(data, Mapping):
        data = {}

    identity = {}
    for cookie_name, keys in _FINGERPRINT_FIELDS.items():
        value = _first_non_empty(data, keys)
        if value.strip():
            identity[cookie_name] = value
    return identity


def to_cookie_header(cookies: Mapping[str, str]) -> Optional[str]:
    """Formats cookies as a `Cookie` header value, or None when there are none."""
    header = "; ".join(f"{name}={value}" for name, value in cookies.items())
    return header if header.strip() else None


class AnonymousIdentity:
    """
    Process-wide guest identity used when no login cookies are stored.
    """

    def __init__(
        self,
        api_client: "BiliAPIClient",
        ttl: float = ANON_IDENTITY_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._api_client = api_client
        self._cache: ExpiringValue[Dict[str, str]] = ExpiringValue(
            "anonymous identity", self._fetch_identity, ttl, clock
        )

    async def get_or_refresh(self) -> Dict[str, str]:
        return await self._cache.get_or_refresh()

    def invalidate(self) -> None:
        self._cache.invalidate()

    async def _fetch_identity(self) -> Dict[str, str]:
        text = await self._api_client.execute(
            "GET",
            FINGERPRINT_API_URL,
            user_agent=FINGERPRINT_USER_AGENT,
            with_referer=False,
            with_cookies=False,
        )
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise ResponseFormatError(
                f"Fingerprint response is not valid JSON: {e}"
            ) from e

        identity = parse_fingerprint(payload if isinstance(payload, dict) else {})
        log.debug(f"Bootstrapped anonymous identity with cookies: {sorted(identity)}")
        return identity


class CredentialResolver:
    """
    Chooses the cookies for outgoing requests. Holds no cache of its own.
    """

    def __init__(self, store: CredentialStore, anonymous: AnonymousIdentity):
        self._store = store
        self._anonymous = anonymous

    async def get_effective_credentials(self) -> Dict[str, str]:
        stored = await self._store.get_cookies()
        if stored:
            return dict(stored)
        return await self._anonymous.get_or_refresh()

    async def is_authenticated(self) -> bool:
        return bool(await self._store.get_cookies())
