"""Debug artifact helpers for failed captures."""

from __future__ import annotations

import os

from playwright.async_api import Page

from .logging import jlog

DEBUG_DIR = os.getenv("ADSHOT_DEBUG_DIR", "media/debug")


def ensure_debug_dir() -> str:
    """Create the debug directory if it does not exist and return the path."""

    try:
        os.makedirs(DEBUG_DIR, exist_ok=True)
    except OSError as exc:
        jlog("warning", event="debug_dir_error", path=DEBUG_DIR, error=str(exc))
    return DEBUG_DIR


async def dump_page_html(page: Page, name: str) -> str | None:
    """Persist the current page HTML for later debugging (best effort)."""

    try:
        ensure_debug_dir()
        html = await page.content()
        path = os.path.join(DEBUG_DIR, f"page_{name}.html")
        with open(path, "w", encoding="utf-8") as f:
            f.write(html)
        return path
    except Exception as exc:  # pragma: no cover - logging only
        jlog("error", event="debug_save_html_error", name=name, error=str(exc))
        return None


__all__ = ["DEBUG_DIR", "dump_page_html", "ensure_debug_dir"]
