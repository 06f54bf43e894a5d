"""Removal of ad slots and interstitials from the loaded homepage."""

from __future__ import annotations

from playwright.async_api import Page

from .logging import jlog

AD_SELECTORS: tuple[str, ...] = (
    "#onesignal-slidedown-dialog",
    "iframe",
    ".banner.banner--align-center.banner--no-background",
    "amp-sticky-ad",
    ".GoogleActiveViewInnerContainer",
    ".banner__content-wrapper",
    "ins",
    ".live-broadcast",
)

_STRIP_SCRIPT = """
(selectors) => {
    const removed = {};
    for (const selector of selectors) {
        const nodes = Array.from(document.querySelectorAll(selector));
        nodes.forEach(node => node.remove());
        removed[selector] = nodes.length;
    }
    return removed;
}
"""


async def strip_ads(page: Page) -> dict[str, int]:
    """Remove known ad markup from the page (best effort).

    Returns the number of nodes removed per selector; an empty dict when the
    page could not be evaluated.
    """

    try:
        removed = await page.evaluate(_STRIP_SCRIPT, list(AD_SELECTORS))
    except Exception as exc:
        jlog("warning", event="strip_ads_failed", error=str(exc))
        return {}
    removed = {k: int(v) for k, v in (removed or {}).items()}
    jlog("info", event="ads_stripped", removed=removed, total=sum(removed.values()))
    return removed


__all__ = ["AD_SELECTORS", "strip_ads"]
