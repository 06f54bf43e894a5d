"""Digests of rendered artifacts."""

from __future__ import annotations

import hashlib
from io import BytesIO

from PIL import Image


def png_digest(png_bytes: bytes) -> tuple[str, int, int]:
    """Return ``(sha256_hex, width, height)`` for a PNG payload."""

    with Image.open(BytesIO(png_bytes)) as im:
        width, height = im.size
    return hashlib.sha256(png_bytes).hexdigest(), width, height


__all__ = ["png_digest"]
