"""Replay of archived homepage HTML for backfilled dates."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import date

from playwright.async_api import Page

from .browser import wait_assets_ready
from .clock import archive_file_name
from .logging import jlog
from .models import DeviceType
from .navigation import navigate
from .storage import Storage

HTML_CONTENT_TIMEOUT_MS = 60_000
DEFAULT_ARCHIVE_FOLDER = "html"

# Archived pages are often saved with desktop markup even when fetched with a
# mobile user agent.
_FORCE_MOBILE_SCRIPT = """
() => {
    document.body.classList.add('home-mobile');
    document.body.classList.remove('home-desktop');
    document.querySelectorAll('[class*="--desktop"]').forEach(el => { el.style.display = 'none'; });
    document.querySelectorAll('[class*="--mobile"]').forEach(el => { el.style.display = ''; });
    window.dispatchEvent(new Event('resize'));
    return document.body.offsetHeight;
}
"""


class HistoricalPageLoader:
    def __init__(
        self,
        storage: Storage,
        live_url: str,
        *,
        folder_id: str = DEFAULT_ARCHIVE_FOLDER,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.storage = storage
        self.live_url = live_url
        self.folder_id = folder_id
        self.sleep = sleep

    async def _read_archive(self, file_name: str) -> str | None:
        found = await asyncio.to_thread(self.storage.find_by_name, self.folder_id, file_name)
        if found is None:
            return None
        raw = await asyncio.to_thread(self.storage.get_content, found.id)
        return raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)

    async def load(self, page: Page, device_type: DeviceType, target_date: date) -> bool:
        """Populate ``page`` with the archived HTML for ``target_date``.

        Returns ``True`` when archived content was loaded and ``False`` when it
        fell back to the live homepage. Only the live fallback can raise.
        """

        file_name = archive_file_name(target_date, device_type)
        try:
            html = await self._read_archive(file_name)
            if html is None:
                jlog("warning", event="archive_missing", folder_id=self.folder_id, file_name=file_name)
            else:
                jlog("info", event="archive_found", file_name=file_name, chars=len(html))
                await page.set_content(html, wait_until="domcontentloaded", timeout=HTML_CONTENT_TIMEOUT_MS)
                await self.sleep(1.0)
                if device_type is DeviceType.MOBILE:
                    await page.evaluate(_FORCE_MOBILE_SCRIPT)
                    jlog("info", event="archive_mobile_forced", file_name=file_name)
                await self.sleep(0.5)
                await wait_assets_ready(page)
                return True
        except Exception as exc:
            jlog("error", event="archive_load_failed", file_name=file_name, error=str(exc))

        jlog("info", event="archive_live_fallback", url=self.live_url)
        await navigate(page, self.live_url, 1, 1)
        await wait_assets_ready(page)
        return False


__all__ = ["DEFAULT_ARCHIVE_FOLDER", "HistoricalPageLoader"]
