"""Placement of campaign creatives on the loaded homepage.

Each (device, visualization) pair maps to a :class:`LayoutDescriptor`: a
prepare rule that scrolls or reshapes the page, and one placement per slot
saying which DOM anchor the creative hangs off and how it is positioned.
All placements run inside a single ``page.evaluate`` call that resolves once
every requested slot has either loaded or failed, or after
``barrier_timeout_ms`` whichever comes first.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass

from playwright.async_api import Page

from .assets import FOOTER_CLOSE_ICON, OVERLAY_CLOSE_ICON, AssetLibrary
from .logging import jlog
from .models import DeviceType, InsertionResult, SlotOutcome, VisualizationType

BARRIER_TIMEOUT_MS = 5_000

FEATURED_CONTAINER = ".row.row--eq-height .col-12.col-md-9 .news-article--featured-listing-large-container"
FEATURED_COLUMN = ".row.row--eq-height .col-12.col-md-9"
TITLED_COLUMN = ".simple-news-column-without-image.simple-news-column-without-image--with-title"
ROW_WRAPPER = ".row.row--eq-height .col-12.col-md-9 .row.news-article-wrapper"
SMALL_LISTING = ".row.news-article__small-listing-with-grouper-cont"
MOBILE_MARKER = ".simple-news-column-without-image--mobile"


@dataclass(frozen=True, slots=True)
class SlotPlacement:
    slot: str
    rule: str
    anchors: tuple[str, ...] = ()
    reference: str | None = None
    gap: int = 0
    icon: str | None = None


@dataclass(frozen=True)
class LayoutDescriptor:
    prepare: str
    placements: tuple[SlotPlacement, ...]
    prepare_anchor: str | None = None
    prepare_offset: int = 0
    settle_s: float = 2.0

    @property
    def slots(self) -> tuple[str, ...]:
        return tuple(p.slot for p in self.placements)


_OVERLAY = SlotPlacement("itt", "itt-overlay", icon=OVERLAY_CLOSE_ICON)
_MOBILE_ANCHO = SlotPlacement("ancho", "below-marker", anchors=(MOBILE_MARKER,), gap=20)

LAYOUTS: dict[tuple[DeviceType, VisualizationType], LayoutDescriptor] = {
    (DeviceType.DESKTOP, VisualizationType.A): LayoutDescriptor(
        prepare="scroll-to",
        prepare_offset=250,
        placements=(
            SlotPlacement(
                "lateral",
                "beside-featured",
                anchors=(FEATURED_CONTAINER, FEATURED_COLUMN),
                reference=TITLED_COLUMN,
                gap=25,
            ),
            SlotPlacement("ancho", "below-row", anchors=(ROW_WRAPPER,), gap=30),
        ),
    ),
    (DeviceType.DESKTOP, VisualizationType.B): LayoutDescriptor(
        prepare="scroll-anchor-top",
        prepare_anchor=SMALL_LISTING,
        prepare_offset=-150,
        placements=(SlotPlacement("lateral", "beside-listing", anchors=(SMALL_LISTING,), gap=30),),
    ),
    (DeviceType.DESKTOP, VisualizationType.C): LayoutDescriptor(
        prepare="top-margin",
        prepare_offset=100,
        settle_s=0.5,
        placements=(SlotPlacement("top", "top-fixed"),),
    ),
    (DeviceType.DESKTOP, VisualizationType.D): LayoutDescriptor(prepare="lock-scroll", placements=(_OVERLAY,)),
    (DeviceType.MOBILE, VisualizationType.A): LayoutDescriptor(
        prepare="scroll-anchor-top",
        prepare_anchor=MOBILE_MARKER,
        placements=(_MOBILE_ANCHO,),
    ),
    (DeviceType.MOBILE, VisualizationType.B): LayoutDescriptor(
        prepare="scroll-anchor-bottom",
        prepare_anchor=MOBILE_MARKER,
        prepare_offset=-200,
        placements=(_MOBILE_ANCHO, SlotPlacement("zocalo", "zocalo-footer", icon=FOOTER_CLOSE_ICON)),
    ),
    (DeviceType.MOBILE, VisualizationType.C): LayoutDescriptor(prepare="lock-scroll", placements=(_OVERLAY,)),
}

# Rendered size (px) of the drawn fallback icon before in-page scaling.
_ICON_FALLBACK_SIZE = {OVERLAY_CLOSE_ICON: 64, FOOTER_CLOSE_ICON: 50}


def layout_for(device_type: DeviceType, visualization_type: VisualizationType | None) -> LayoutDescriptor | None:
    if visualization_type is None:
        return None
    return LAYOUTS.get((device_type, visualization_type))


def select_placements(layout: LayoutDescriptor, creative_urls: Mapping[str, str]) -> tuple[SlotPlacement, ...]:
    """Placements of ``layout`` that have a creative URL; other slots are dropped."""

    return tuple(p for p in layout.placements if creative_urls.get(p.slot))


PREPARE_SCRIPT = """
({ rule, anchor, offset }) => {
    const el = anchor ? document.querySelector(anchor) : null;
    switch (rule) {
        case 'scroll-to':
            window.scrollTo(0, offset);
            break;
        case 'scroll-anchor-top':
            if (el) window.scrollTo(0, el.getBoundingClientRect().top + window.scrollY + offset);
            break;
        case 'scroll-anchor-bottom':
            if (el) window.scrollTo(0, el.getBoundingClientRect().bottom + window.scrollY + offset);
            break;
        case 'top-margin':
            window.scrollTo(0, 0);
            document.body.style.setProperty('margin-top', offset + 'px', 'important');
            break;
        case 'lock-scroll':
            document.documentElement.style.overflow = 'hidden';
            document.body.style.overflow = 'hidden';
            window.scrollTo(0, 0);
            break;
    }
    return { anchorFound: anchor ? Boolean(el) : null, scrollY: window.scrollY };
}
"""

INSERT_SCRIPT = """
async ({ placements, urls, icons, timeoutMs }) => {
    const results = {};
    const blank = () => ({ found: false, inserted: false, error: null, position: null });
    const first = (selectors) => {
        for (const selector of selectors || []) {
            const el = document.querySelector(selector);
            if (el) return el;
        }
        return null;
    };
    // Resolves true on load and false on error so failures settle the barrier too.
    const settle = (img) => new Promise(resolve => {
        img.addEventListener('load', () => resolve(true), { once: true });
        img.addEventListener('error', () => resolve(false), { once: true });
    });
    const creative = (p, url, style) => {
        const img = document.createElement('img');
        img.id = 'inserted-' + p.slot;
        Object.assign(img.style, style);
        const loaded = settle(img);
        img.src = url;
        return [img, loaded];
    };
    const where = (img) => ({ left: img.style.left, top: img.style.top });

    const rules = {
        'beside-featured': async (p, url, res) => {
            const ref = first(p.anchors);
            if (!ref) { res.error = 'reference element not found'; return; }
            res.found = true;
            const refRect = ref.getBoundingClientRect();
            const [img, loaded] = creative(p, url, {
                position: 'absolute', zIndex: '9999', left: (refRect.right + p.gap + window.scrollX) + 'px',
            });
            document.body.appendChild(img);
            if (!await loaded) { res.error = 'image failed to load'; return; }
            const target = p.reference ? document.querySelector(p.reference) : null;
            let top;
            if (target) {
                top = target.getBoundingClientRect().bottom + 5 + window.scrollY;
            } else {
                const navbar = 68;
                top = navbar + (window.innerHeight - navbar - img.height) / 2 + window.scrollY;
            }
            img.style.top = top + 'px';
            res.inserted = true;
            res.position = where(img);
        },
        'below-row': async (p, url, res) => {
            const row = first(p.anchors);
            if (!row) { res.error = 'row wrapper not found'; return; }
            res.found = true;
            const rowRect = row.getBoundingClientRect();
            const [img, loaded] = creative(p, url, {
                position: 'absolute', zIndex: '9999', left: '50%', transform: 'translateX(-50%)',
                top: (rowRect.bottom + p.gap + window.scrollY) + 'px',
            });
            document.body.appendChild(img);
            if (!await loaded) { res.error = 'image failed to load'; return; }
            row.style.marginBottom = (img.height + p.gap) + 'px';
            res.inserted = true;
            res.position = where(img);
        },
        'beside-listing': async (p, url, res) => {
            const ref = first(p.anchors);
            if (!ref) { res.error = 'listing container not found'; return; }
            res.found = true;
            const rect = ref.getBoundingClientRect();
            const [img, loaded] = creative(p, url, {
                position: 'absolute', zIndex: '9999',
                left: (rect.right + p.gap + window.scrollX) + 'px', top: (rect.top + window.scrollY) + 'px',
            });
            img.crossOrigin = 'anonymous';
            document.body.appendChild(img);
            if (!await loaded) { res.error = 'image failed to load'; return; }
            res.inserted = true;
            res.position = where(img);
        },
        'top-fixed': async (p, url, res) => {
            res.found = true;
            const [img, loaded] = creative(p, url, {
                position: 'fixed', zIndex: '9999', left: '50%', transform: 'translateX(-50%)', top: '0px',
            });
            document.body.appendChild(img);
            if (!await loaded) { res.error = 'image failed to load'; return; }
            res.inserted = true;
            res.position = where(img);
        },
        'itt-overlay': async (p, url, res) => {
            const icon = results.close_icon = blank();
            const overlay = document.createElement('div');
            overlay.id = 'itt-overlay';
            Object.assign(overlay.style, {
                position: 'fixed', top: '0', left: '0', width: '100vw', height: '100vh',
                backgroundColor: 'rgba(51, 51, 51, 0.85)', zIndex: '99999',
                display: 'flex', justifyContent: 'center', alignItems: 'center',
            });
            const box = document.createElement('div');
            Object.assign(box.style, {
                position: 'relative', maxWidth: '90%', maxHeight: '90%',
                display: 'flex', justifyContent: 'center', alignItems: 'center',
            });
            overlay.appendChild(box);
            document.body.appendChild(overlay);
            res.found = true;
            const [img, loaded] = creative(p, url, { maxWidth: '100%', maxHeight: '100%', objectFit: 'contain' });
            box.appendChild(img);
            if (!await loaded) { res.error = 'image failed to load'; icon.error = 'creative not shown'; return; }
            const rect = img.getBoundingClientRect();
            res.inserted = true;
            res.position = { left: rect.left + 'px', top: rect.top + 'px' };
            const iconSrc = icons[p.slot];
            if (!iconSrc) { icon.error = 'close icon unavailable'; return; }
            icon.found = true;
            const close = document.createElement('img');
            close.id = 'close-icon-itt';
            Object.assign(close.style, { position: 'fixed', zIndex: '100001', cursor: 'pointer' });
            const iconLoaded = settle(close);
            close.src = iconSrc;
            document.body.appendChild(close);
            if (!await iconLoaded) { icon.error = 'close icon failed to load'; return; }
            const w = close.naturalWidth * 0.5;
            const h = close.naturalHeight * 0.5;
            close.style.width = w + 'px';
            close.style.height = h + 'px';
            close.style.top = (rect.top - 10 - h) + 'px';
            close.style.left = (rect.right - 5 - w + 10) + 'px';
            icon.inserted = true;
            icon.position = where(close);
        },
        'below-marker': async (p, url, res) => {
            const marker = first(p.anchors);
            if (!marker) { res.error = 'column marker not found'; return; }
            res.found = true;
            const [img, loaded] = creative(p, url, {
                position: 'fixed', zIndex: '9999', maxWidth: '100%', height: 'auto', display: 'block',
            });
            if (!await loaded) { res.error = 'image failed to load'; return; }
            const rect = marker.getBoundingClientRect();
            marker.style.marginBottom = (img.naturalHeight + p.gap) + 'px';
            img.style.left = '50%';
            img.style.transform = 'translateX(-50%)';
            img.style.top = rect.bottom + 'px';
            document.body.appendChild(img);
            res.inserted = true;
            res.position = where(img);
        },
        'zocalo-footer': async (p, url, res) => {
            res.found = true;
            const bar = document.createElement('div');
            bar.id = 'zocalo-container';
            Object.assign(bar.style, {
                position: 'fixed', bottom: '0px', left: '0px', width: '100%', padding: '10px 0px 20px 0px',
                backgroundColor: 'white', zIndex: '9999',
                display: 'flex', justifyContent: 'center', alignItems: 'center',
            });
            const [img, loaded] = creative(p, url, { maxWidth: '100%', height: 'auto', display: 'block' });
            if (!await loaded) { res.error = 'image failed to load'; return; }
            bar.appendChild(img);
            document.body.appendChild(bar);
            const rect = img.getBoundingClientRect();
            if (icons[p.slot]) {
                const close = document.createElement('img');
                close.src = icons[p.slot];
                Object.assign(close.style, {
                    position: 'fixed', zIndex: '10000', width: '25px', height: '25px',
                    right: '5px', top: (rect.top - 25) + 'px',
                });
                document.body.appendChild(close);
            }
            res.inserted = true;
            res.position = { left: rect.left + 'px', top: rect.top + 'px' };
        },
    };

    const pending = placements.map(p => {
        const res = results[p.slot] = blank();
        const rule = rules[p.rule];
        if (!rule) { res.error = 'unknown placement rule ' + p.rule; return Promise.resolve(); }
        return Promise.resolve()
            .then(() => rule(p, urls[p.slot], res))
            .catch(err => { res.error = String((err && err.message) || err); });
    });
    let timedOut = false;
    const timer = new Promise(resolve => setTimeout(() => { timedOut = true; resolve(); }, timeoutMs));
    await Promise.race([Promise.all(pending), timer]);
    if (timedOut) {
        for (const res of Object.values(results)) {
            if (!res.inserted && !res.error) res.error = 'timed out waiting for image';
        }
    }
    return JSON.parse(JSON.stringify(results));
}
"""


class CreativeInjector:
    def __init__(
        self,
        assets: AssetLibrary,
        *,
        barrier_timeout_ms: int = BARRIER_TIMEOUT_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.assets = assets
        self.barrier_timeout_ms = barrier_timeout_ms
        self.sleep = sleep

    def _icons(self, placements: tuple[SlotPlacement, ...]) -> dict[str, str]:
        return {
            p.slot: self.assets.close_icon_data_url(p.icon, _ICON_FALLBACK_SIZE.get(p.icon, 64))
            for p in placements
            if p.icon
        }

    async def inject(
        self,
        page: Page,
        device_type: DeviceType,
        visualization_type: VisualizationType | None,
        creative_urls: Mapping[str, str],
    ) -> InsertionResult:
        """Insert the creatives defined for the layout and report per slot.

        Slots the layout does not define are ignored. Missing anchors and
        broken images are recorded in the result; only a failure of the page
        evaluation itself raises.
        """

        layout = layout_for(device_type, visualization_type)
        if layout is None:
            jlog("info", event="no_layout", device_type=device_type.value, visualization_type=getattr(visualization_type, "value", None))
            return InsertionResult()
        ignored = sorted(slot for slot, url in creative_urls.items() if url and slot not in layout.slots)
        if ignored:
            jlog("info", event="slots_ignored", slots=ignored, layout_slots=list(layout.slots))
        placements = select_placements(layout, creative_urls)
        if not placements:
            jlog("info", event="no_creatives", layout_slots=list(layout.slots))
            return InsertionResult()

        prepared = await page.evaluate(
            PREPARE_SCRIPT,
            {"rule": layout.prepare, "anchor": layout.prepare_anchor, "offset": layout.prepare_offset},
        )
        jlog("info", event="layout_prepared", rule=layout.prepare, **(prepared or {}))
        await self.sleep(layout.settle_s)

        raw = await page.evaluate(
            INSERT_SCRIPT,
            {
                "placements": [
                    {"slot": p.slot, "rule": p.rule, "anchors": list(p.anchors), "reference": p.reference, "gap": p.gap}
                    for p in placements
                ],
                "urls": {p.slot: creative_urls[p.slot] for p in placements},
                "icons": self._icons(placements),
                "timeoutMs": self.barrier_timeout_ms,
            },
        )
        result = InsertionResult({name: SlotOutcome.from_page(payload) for name, payload in (raw or {}).items()})
        level = "info" if result.all_inserted else "warning"
        jlog(level, event="creatives_inserted", results=result.as_dict(), failed=result.failed_slots)
        return result


__all__ = [
    "BARRIER_TIMEOUT_MS",
    "CreativeInjector",
    "LAYOUTS",
    "LayoutDescriptor",
    "SlotPlacement",
    "layout_for",
    "select_placements",
]
