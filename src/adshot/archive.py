"""Daily HTML snapshots of the target homepage.

The stored files are what :class:`adshot.historical.HistoricalPageLoader`
replays when a campaign is rendered for a past date.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from typing import Optional

import requests

from .browser import EXTRA_HTTP_HEADERS, USER_AGENTS
from .clock import archive_file_name, region_today
from .errors import AdshotError
from .historical import DEFAULT_ARCHIVE_FOLDER
from .logging import jlog
from .models import DeviceType
from .storage import Storage, StoredFile

HTML_FETCH_TIMEOUT_S = 30
HTML_MIME_TYPE = "text/html"
DEVICE_PAUSE_S = 5.0


def _make_http(user_agent: str) -> requests.Session:
    s = requests.Session()
    s.headers.update({"User-Agent": user_agent, **EXTRA_HTTP_HEADERS})
    return s


def fetch_homepage_html(url: str, device_type: DeviceType, *, timeout: float = HTML_FETCH_TIMEOUT_S) -> str:
    """Download ``url`` as ``device_type`` would request it.

    Mobile requests that fail are retried once with the desktop user agent.
    Raises :class:`AdshotError` when no HTML could be obtained.
    """

    try:
        resp = _make_http(USER_AGENTS[device_type]).get(url, timeout=timeout)
        resp.raise_for_status()
        html = resp.text
    except requests.RequestException as exc:
        if device_type is not DeviceType.MOBILE:
            raise AdshotError(f"fetching {url} as {device_type.value} failed: {exc}") from exc
        jlog("warning", event="html_fetch_fallback", url=url, device_type=device_type.value, error=str(exc))
        try:
            resp = _make_http(USER_AGENTS[DeviceType.DESKTOP]).get(url, timeout=timeout)
            resp.raise_for_status()
            html = resp.text
        except requests.RequestException as fallback_exc:
            raise AdshotError(f"fetching {url} as mobile failed: {fallback_exc}") from fallback_exc
    if not html:
        raise AdshotError(f"empty HTML returned by {url}")
    return html


def save_homepage_html(
    storage: Storage,
    url: str,
    day: date,
    device_type: DeviceType,
    *,
    folder_id: str = DEFAULT_ARCHIVE_FOLDER,
) -> StoredFile:
    """Fetch and store the homepage HTML, replacing any snapshot of ``day``."""

    html = fetch_homepage_html(url, device_type)
    file_name = archive_file_name(day, device_type)
    stored = storage.upload_buffer(folder_id, file_name, html.encode("utf-8"), HTML_MIME_TYPE)
    jlog("info", event="html_archived", file_name=file_name, chars=len(html), storage_id=stored.id)
    return stored


async def archive_today(
    storage: Storage,
    url: str,
    *,
    folder_id: str = DEFAULT_ARCHIVE_FOLDER,
    now: Optional[datetime] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> dict[str, bool]:
    """Archive desktop then mobile HTML for the region's current date.

    A failure for one device is logged and the other still runs. Raises
    :class:`AdshotError` only when neither device could be archived.
    """

    today = region_today(now)
    results: dict[str, bool] = {}
    for device_type in (DeviceType.DESKTOP, DeviceType.MOBILE):
        try:
            await asyncio.to_thread(save_homepage_html, storage, url, today, device_type, folder_id=folder_id)
            results[device_type.value] = True
        except Exception as exc:
            jlog("error", event="html_archive_failed", device_type=device_type.value, error=str(exc))
            results[device_type.value] = False
        if device_type is DeviceType.DESKTOP:
            await sleep(DEVICE_PAUSE_S)

    jlog("info", event="html_archive_summary", day=today.isoformat(), **results)
    if not any(results.values()):
        raise AdshotError(f"no homepage HTML could be archived for {today.isoformat()}")
    return results


__all__ = ["archive_today", "fetch_homepage_html", "save_homepage_html"]
