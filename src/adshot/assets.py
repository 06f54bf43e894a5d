"""Static image assets: browser chrome bar, phone frame and close icons."""

from __future__ import annotations

import base64
import os
from functools import lru_cache
from io import BytesIO
from pathlib import Path

from PIL import Image, ImageDraw

from .logging import jlog

DEFAULT_ASSETS_DIR = os.getenv("ADSHOT_ASSETS_DIR", "assets")

CHROME_BAR = "bar1.png"
PHONE_FRAME = "navegador_full.png"
OVERLAY_CLOSE_ICON = "x_itt.png"
FOOTER_CLOSE_ICON = "x.png"


@lru_cache(maxsize=8)
def _drawn_close_icon(size: int) -> bytes:
    """Render a round dark close button with a white X."""

    img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.ellipse((0, 0, size - 1, size - 1), fill=(34, 34, 34, 230))
    inset = size // 3
    width = max(2, size // 12)
    draw.line((inset, inset, size - inset, size - inset), fill=(255, 255, 255, 255), width=width)
    draw.line((inset, size - inset, size - inset, inset), fill=(255, 255, 255, 255), width=width)
    out = BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()


class AssetLibrary:
    def __init__(self, base_dir: str | Path = DEFAULT_ASSETS_DIR) -> None:
        self.base_dir = Path(base_dir)

    def path(self, name: str) -> Path:
        return self.base_dir / name

    def load(self, name: str) -> Image.Image | None:
        """Open an asset, or return ``None`` when it is not on disk."""

        path = self.path(name)
        if not path.is_file():
            jlog("warning", event="asset_missing", asset=str(path))
            return None
        with Image.open(path) as im:
            im.load()
            return im.copy()

    def close_icon_data_url(self, name: str, fallback_size: int = 64) -> str:
        """Return the icon as a ``data:`` URL for injection into the page."""

        path = self.path(name)
        if path.is_file():
            raw = path.read_bytes()
        else:
            raw = _drawn_close_icon(fallback_size)
        return "data:image/png;base64," + base64.b64encode(raw).decode("ascii")


__all__ = [
    "AssetLibrary",
    "CHROME_BAR",
    "DEFAULT_ASSETS_DIR",
    "FOOTER_CLOSE_ICON",
    "OVERLAY_CLOSE_ICON",
    "PHONE_FRAME",
]
