"""
Helper functions for normalizing and formatting values from API responses.
"""

import re

_HTML_TAG_REGEX = re.compile(r"<.*?>")


def ensure_https(url: str | None) -> str:
    """Upgrades protocol-relative URLs (`//host/path`) to https."""
    if not url or not url.strip():
        return ""
    return f"https:{url}" if url.startswith("//") else url


def strip_html(html: str) -> str:
    """Removes markup such as the `<em class="keyword">` highlights in search titles."""
    return _HTML_TAG_REGEX.sub("", html)


def parse_duration_to_seconds(value: str | None) -> int:
    """
    Parses `ss`, `mm:ss` or `hh:mm:ss` into seconds. Non-numeric parts are ignored.
    """
    if not value or not value.strip():
        return 0
    total = 0
    for part in value.split(":"):
        if part.strip().isdigit():
            total = total * 60 + int(part)
    return total


def format_duration(seconds: float) -> str:
    """
    Formats a duration in seconds into a human-readable string (e.g., '2h 34m 12s').
    """
    s = int(seconds)
    hours, remainder = divmod(s, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def format_bitrate(kbps: int) -> str:
    if kbps >= 1000:
        return f"{kbps / 1000:.1f} Mbps"
    return f"{kbps} kbps"
