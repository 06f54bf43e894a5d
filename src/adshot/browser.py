"""Playwright browser lifecycle shared by the capture jobs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from .logging import jlog
from .models import DeviceType
from .urls import origin_of

BROWSER_LAUNCH_TIMEOUT_MS = 90_000
IMAGES_WAIT_TIMEOUT_MS = 30_000

CHROMIUM_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-setuid-sandbox",
    "--disable-gpu",
    "--single-process",
    "--no-zygote",
]


@dataclass(frozen=True, slots=True)
class Viewport:
    width: int
    height: int
    device_scale_factor: int
    is_mobile: bool
    has_touch: bool


VIEWPORTS: dict[DeviceType, Viewport] = {
    DeviceType.DESKTOP: Viewport(width=1920, height=1080, device_scale_factor=1, is_mobile=False, has_touch=False),
    DeviceType.MOBILE: Viewport(width=400, height=820, device_scale_factor=2, is_mobile=True, has_touch=True),
}

USER_AGENTS: dict[DeviceType, str] = {
    DeviceType.DESKTOP: (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    DeviceType.MOBILE: (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 16_0 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/16.0 Mobile/15E148 Safari/604.1"
    ),
}

EXTRA_HTTP_HEADERS = {"ngrok-skip-browser-warning": "true"}

ANTI_DETECTION_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'languages', { get: () => ['es-AR', 'es', 'en-US', 'en'] });
"""


async def wait_assets_ready(page: Page, timeout_ms: int = IMAGES_WAIT_TIMEOUT_MS) -> None:
    """Wait for pending page images (load or error), bounded by ``timeout_ms``."""

    try:
        await page.evaluate(
            """
            (timeoutMs) => {
                const pending = Array.from(document.images || []).filter(img => !img.complete);
                if (pending.length === 0) return;
                const settled = Promise.all(pending.map(img => new Promise(res => {
                    img.addEventListener('load', () => res(), { once: true });
                    img.addEventListener('error', () => res(), { once: true });
                })));
                const timer = new Promise(res => setTimeout(res, timeoutMs));
                return Promise.race([settled, timer]);
            }
            """,
            timeout_ms,
        )
    except Exception as exc:
        jlog("warning", event="wait_images_failed", error=str(exc))


class BrowserSession:
    """One Chromium instance owned by a single render job.

    Use as ``async with BrowserSession(device) as session``; leaving the block
    always tears the browser down, whatever happened inside it.
    """

    def __init__(self, device_type: DeviceType, *, headless: bool = True) -> None:
        self.device_type = device_type
        self.headless = headless
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._contexts: list[BrowserContext] = []

    async def __aenter__(self) -> "BrowserSession":
        await self.launch()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def launch(self) -> None:
        viewport = VIEWPORTS[self.device_type]
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=[*CHROMIUM_LAUNCH_ARGS, f"--window-size={viewport.width},{viewport.height}"],
                timeout=BROWSER_LAUNCH_TIMEOUT_MS,
            )
        except Exception:
            await self.close()
            raise
        jlog("info", event="browser_launched", device_type=self.device_type.value)

    async def new_page(self, *, user_agent: str | None = None, grant_origin: str | None = None) -> Page:
        """Open a page configured for the session's device.

        ``user_agent`` overrides the device default for this page's context.
        """

        if self._browser is None:
            raise RuntimeError("browser session is not launched")
        viewport = VIEWPORTS[self.device_type]
        context = await self._browser.new_context(
            viewport={"width": viewport.width, "height": viewport.height},
            device_scale_factor=viewport.device_scale_factor,
            is_mobile=viewport.is_mobile,
            has_touch=viewport.has_touch,
            user_agent=user_agent or USER_AGENTS[self.device_type],
            locale="es-AR",
            extra_http_headers=EXTRA_HTTP_HEADERS,
        )
        self._contexts.append(context)
        await context.add_init_script(ANTI_DETECTION_SCRIPT)
        if grant_origin:
            try:
                await context.grant_permissions(["geolocation", "notifications"], origin=origin_of(grant_origin))
            except Exception as exc:
                jlog("warning", event="grant_permissions_failed", origin=grant_origin, error=str(exc))
        return await context.new_page()

    async def close(self) -> None:
        """Close pages, then the browser, then always stop the driver."""

        browser, playwright = self._browser, self._playwright
        self._browser, self._playwright = None, None
        if browser is not None:
            for context in self._contexts:
                for page in list(context.pages):
                    try:
                        await page.close()
                    except Exception as exc:
                        jlog("warning", event="page_close_failed", error=str(exc))
            try:
                await browser.close()
                jlog("info", event="browser_closed", device_type=self.device_type.value)
            except Exception as exc:
                jlog("warning", event="browser_close_failed", error=str(exc))
        self._contexts = []
        if playwright is not None:
            # Stopping the driver terminates any browser process it still owns.
            try:
                await playwright.stop()
            except Exception as exc:
                jlog("error", event="playwright_stop_failed", error=str(exc))


__all__ = [
    "ANTI_DETECTION_SCRIPT",
    "BrowserSession",
    "CHROMIUM_LAUNCH_ARGS",
    "EXTRA_HTTP_HEADERS",
    "USER_AGENTS",
    "VIEWPORTS",
    "Viewport",
    "wait_assets_ready",
]
