"""Presentation framing of raw screenshots.

Desktop captures get a browser chrome bar stacked on top; mobile captures are
set inside a phone frame. Both carry a date label so the deliverable shows
which day it represents.
"""

from __future__ import annotations

from datetime import date, datetime
from functools import lru_cache
from io import BytesIO
from typing import Any

from PIL import Image, ImageDraw, ImageFont

from .assets import CHROME_BAR, PHONE_FRAME, AssetLibrary
from .clock import date_label
from .logging import jlog
from .models import DeviceType

MOBILE_SCREEN_SIZE = (400, 820)
# Empirical shift from the frame centre to its screen cut-out.
MOBILE_SCREEN_SHIFT = (-170, 50)
MOBILE_LABEL_BASELINE = 20

# The dark title strip occupies the top 40px of the 248px-tall source bar.
CHROME_STRIP_PROPORTION = 0.161
LABEL_COLOR = (229, 229, 229, 255)

_FONT_CANDIDATES = (
    "DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "LiberationSans-Regular.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
    "Arial.ttf",
)


def _lanczos() -> Any:
    resampling: Any = getattr(Image, "Resampling", None)
    if resampling is not None:
        return getattr(resampling, "LANCZOS")
    return getattr(Image, "LANCZOS")


@lru_cache(maxsize=16)
def _font(size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    size = max(size, 8)
    for candidate in _FONT_CANDIDATES:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    try:
        return ImageFont.load_default(size=size)
    except TypeError:
        # Pillow < 10.1 has no sized default font.
        return ImageFont.load_default()


def _draw_label(canvas: Image.Image, text: str, *, right: int, baseline: int, font_size: int) -> None:
    draw = ImageDraw.Draw(canvas)
    font = _font(font_size)
    left, top, r, bottom = draw.textbbox((0, 0), text, font=font)
    x = right - (r - left)
    y = baseline - (bottom - top) - top
    draw.text((x, y), text, font=font, fill=LABEL_COLOR)


def _png(img: Image.Image) -> bytes:
    out = BytesIO()
    img.save(out, format="PNG", compress_level=9)
    return out.getvalue()


class FrameCompositor:
    def __init__(self, assets: AssetLibrary) -> None:
        self.assets = assets

    def compose(
        self,
        screenshot: bytes,
        device_type: DeviceType,
        target_date: date | None = None,
        now: datetime | None = None,
    ) -> bytes:
        """Frame ``screenshot`` for ``device_type``.

        The label shows ``target_date`` when set and the region-local date and
        time of ``now`` otherwise. Returns the screenshot unchanged when the
        frame asset is missing.
        """

        label = date_label(target_date, now)
        if device_type is DeviceType.MOBILE:
            return self._compose_mobile(screenshot, label)
        return self._compose_desktop(screenshot, label)

    def _compose_desktop(self, screenshot: bytes, label: str) -> bytes:
        bar = self.assets.load(CHROME_BAR)
        if bar is None:
            jlog("warning", event="frame_skipped", asset=CHROME_BAR)
            return screenshot
        with Image.open(BytesIO(screenshot)) as shot_src:
            shot = shot_src.convert("RGBA")
        width, height = shot.size
        bar_height = max(1, round(bar.height * width / bar.width))
        bar = bar.convert("RGBA").resize((width, bar_height), resample=_lanczos())

        canvas = Image.new("RGBA", (width, bar_height + height), (255, 255, 255, 255))
        canvas.paste(bar, (0, 0), bar)
        font_size = round(width * 0.0095)
        strip_height = bar_height * CHROME_STRIP_PROPORTION
        _draw_label(
            canvas,
            label,
            right=width - round(width * 0.012),
            baseline=round(strip_height / 2 + font_size / 2.5) + 10,
            font_size=font_size,
        )
        canvas.paste(shot, (0, bar_height))
        jlog("info", event="frame_composed", device_type="desktop", width=width, height=canvas.height, label=label)
        return _png(canvas)

    def _compose_mobile(self, screenshot: bytes, label: str) -> bytes:
        frame = self.assets.load(PHONE_FRAME)
        if frame is None:
            jlog("warning", event="frame_skipped", asset=PHONE_FRAME)
            return screenshot
        canvas = frame.convert("RGBA")
        frame_w, frame_h = canvas.size
        with Image.open(BytesIO(screenshot)) as shot_src:
            shot = shot_src.convert("RGBA").resize(MOBILE_SCREEN_SIZE, resample=_lanczos())

        screen_w, screen_h = MOBILE_SCREEN_SIZE
        left = round((frame_w - screen_w) / 2) + MOBILE_SCREEN_SHIFT[0]
        top = round((frame_h - screen_h) / 2) + MOBILE_SCREEN_SHIFT[1]
        _draw_label(
            canvas,
            label,
            right=frame_w - round(frame_w * 0.012),
            baseline=MOBILE_LABEL_BASELINE,
            font_size=round(frame_w * 0.008),
        )
        canvas.paste(shot, (left, top))
        jlog("info", event="frame_composed", device_type="mobile", width=frame_w, height=frame_h, left=left, top=top)
        return _png(canvas)


__all__ = ["FrameCompositor", "MOBILE_SCREEN_SHIFT", "MOBILE_SCREEN_SIZE"]
