"""URL helpers for creative images and the capture target."""

from __future__ import annotations

import urllib.parse
from collections.abc import Mapping

from .models import SLOT_NAMES

_ALLOWED_SCHEMES = ("http", "https", "data")


def resolve_creative_url(url: str | None, base_url: str | None = None) -> str | None:
    """Return an absolute URL the headless browser can fetch, or ``None``.

    Relative paths (as stored for uploaded creatives) are joined onto
    ``base_url``; anything else that is not http(s) or a data URL is dropped.
    """

    try:
        if not url or not url.strip():
            return None
        url = url.strip()
        parsed = urllib.parse.urlparse(url)
        if parsed.scheme == "data":
            return url
        if not parsed.scheme:
            if not base_url:
                return None
            url = urllib.parse.urljoin(base_url.rstrip("/") + "/", url.lstrip("/"))
            parsed = urllib.parse.urlparse(url)
        if parsed.scheme not in _ALLOWED_SCHEMES or not parsed.netloc:
            return None
        return url
    except ValueError:
        return None


def resolve_creative_urls(urls: Mapping[str, str | None], base_url: str | None = None) -> dict[str, str]:
    """Resolve every known slot in ``urls``; unusable entries are dropped."""

    resolved: dict[str, str] = {}
    for slot in SLOT_NAMES:
        value = resolve_creative_url(urls.get(slot), base_url)
        if value:
            resolved[slot] = value
    return resolved


def origin_of(url: str) -> str:
    parsed = urllib.parse.urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


__all__ = ["origin_of", "resolve_creative_url", "resolve_creative_urls"]
