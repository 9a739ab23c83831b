"""
WBI request signing: mixin key derivation, the rotating key cache and the
`w_rid` signature computed over the canonical query string.
"""

import hashlib
import hmac
import json
import logging
import re
import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional
from urllib.parse import quote

from bili_cli.exceptions import (
    BiliCliError,
    DescriptorInvalidError,
    ResponseFormatError,
)
from bili_cli.utils.expiring import ExpiringValue

from .constants import (
    CSRF_COOKIE_NAME,
    MIXIN_KEY_ENC_TAB,
    MIXIN_KEY_LENGTH,
    NAV_API_URL,
    WBI_KEY_TTL,
    WEB_TICKET_API_URL,
    WEB_TICKET_HMAC_KEY,
    WEB_TICKET_KEY_ID,
    WEB_TICKET_USER_AGENT,
)

if TYPE_CHECKING:
    from .client import BiliAPIClient

log = logging.getLogger(__name__)

_FILTERED_CHARS_REGEX = re.compile(r"[!'()*]")


def extract_key_stem(url: str) -> str:
    """Returns the last path segment of a key URL with its extension removed."""
    return url.rsplit("/", 1)[-1].split(".", 1)[0]


def derive_mixin_key(img_url: str, sub_url: str) -> str:
    """
    Builds the 32-character mixin key from the `img` and `sub` key URLs.

    Raises:
        DescriptorInvalidError: If either URL is blank.
    """
    if not img_url.strip() or not sub_url.strip():
        raise DescriptorInvalidError(
            f"Invalid WBI key descriptors: img={img_url!r} sub={sub_url!r}"
        )
    raw = extract_key_stem(img_url) + extract_key_stem(sub_url)
    mixed = "".join(raw[idx] for idx in MIXIN_KEY_ENC_TAB if idx < len(raw))
    return mixed[:MIXIN_KEY_LENGTH]


def sanitize_value(value: str) -> str:
    """Strips the characters the server drops before verifying a signature."""
    return _FILTERED_CHARS_REGEX.sub("", value)


def encode_query(params: Mapping[str, str]) -> str:
    """Percent-encodes the parameters sorted by key (spaces become %20)."""
    return "&".join(
        f"{quote(key, safe='')}={quote(value, safe='')}"
        for key, value in sorted(params.items())
    )


def sign_params(
    params: Mapping[str, Any], mixin_key: str, wts: Optional[int] = None
) -> Dict[str, str]:
    """
    Returns the sanitized, key-sorted parameters with `wts` and `w_rid` added.

    Args:
        params: Raw query parameters. Values are converted with `str()`.
        mixin_key: The current 32-character mixin key.
        wts: Unix timestamp in seconds. Defaults to the current time.
    """
    signed = {key: sanitize_value(str(value)) for key, value in params.items()}
    signed["wts"] = str(int(time.time()) if wts is None else wts)
    signed = dict(sorted(signed.items()))
    canonical = encode_query(signed)
    signed["w_rid"] = hashlib.md5(  # noqa: S324
        (canonical + mixin_key).encode("utf-8")
    ).hexdigest()
    return signed


def sign_url(
    base_url: str,
    params: Mapping[str, Any],
    mixin_key: str,
    wts: Optional[int] = None,
) -> str:
    """Signs `params` and appends them, followed by `w_rid`, to `base_url`."""
    signed = sign_params(params, mixin_key, wts=wts)
    w_rid = signed.pop("w_rid")
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{encode_query(signed)}&w_rid={w_rid}"


def web_ticket_hexsign(timestamp: int, key: str = WEB_TICKET_HMAC_KEY) -> str:
    """HMAC-SHA256 signature expected by the web ticket endpoint."""
    return hmac.new(
        key.encode("utf-8"), f"ts{timestamp}".encode("utf-8"), hashlib.sha256
    ).hexdigest()


def _load_json(text: str, source: str) -> dict[str, Any]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise ResponseFormatError(f"{source} response is not valid JSON: {e}") from e
    return payload if isinstance(payload, dict) else {}


class WbiSigner:
    """
    Owns the process-wide WBI mixin key and signs request URLs with it.

    The key is fetched from the nav endpoint; when that fails for any reason
    the web ticket endpoint is tried once before the error propagates.
    """

    def __init__(
        self,
        api_client: "BiliAPIClient",
        ttl: float = WBI_KEY_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            api_client: A reference to the main BiliAPIClient instance.
            ttl: Lifetime of a derived mixin key in seconds.
            clock: Monotonic time source, injectable for tests.
        """
        self._api_client = api_client
        self._key_cache: ExpiringValue[str] = ExpiringValue(
            "WBI mixin key", self._fetch_mixin_key, ttl, clock
        )

    async def get_mixin_key(self) -> str:
        return await self._key_cache.get_or_refresh()

    def invalidate(self) -> None:
        self._key_cache.invalidate()

    async def sign_url(
        self, base_url: str, params: Mapping[str, Any], wts: Optional[int] = None
    ) -> str:
        mixin_key = await self.get_mixin_key()
        return sign_url(base_url, params, mixin_key, wts=wts)

    async def _fetch_mixin_key(self) -> str:
        try:
            mixin_key = await self._fetch_mixin_key_from_nav()
        except BiliCliError as e:
            log.warning(f"Fetching WBI key from nav failed, falling back to ticket: {e}")
            mixin_key = await self._fetch_mixin_key_from_ticket()
        log.debug(f"Refreshed WBI mixin key: {mixin_key[:8]}...")
        return mixin_key

    async def _fetch_mixin_key_from_nav(self) -> str:
        text = await self._api_client.execute_get_text(NAV_API_URL)
        data = _load_json(text, "nav").get("data") or {}
        wbi_img = data.get("wbi_img") or {}
        return derive_mixin_key(
            str(wbi_img.get("img_url") or ""), str(wbi_img.get("sub_url") or "")
        )

    async def _fetch_mixin_key_from_ticket(self) -> str:
        ts = int(time.time())
        params = {
            "key_id": WEB_TICKET_KEY_ID,
            "hexsign": web_ticket_hexsign(ts),
            "context[ts]": str(ts),
        }
        credentials = await self._api_client.credentials.get_effective_credentials()
        csrf = credentials.get(CSRF_COOKIE_NAME, "")
        if csrf.strip():
            params["csrf"] = csrf

        text = await self._api_client.execute(
            "POST",
            f"{WEB_TICKET_API_URL}?{encode_query(params)}",
            user_agent=WEB_TICKET_USER_AGENT,
            with_referer=False,
            with_cookies=False,
            body=b"",
        )
        data = _load_json(text, "web ticket").get("data") or {}
        nav = data.get("nav") or {}
        return derive_mixin_key(str(nav.get("img") or ""), str(nav.get("sub") or ""))
