from __future__ import annotations

import pytest
from fakes import RecordingSleep, png_bytes

from adshot.assets import CHROME_BAR, PHONE_FRAME


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def assets_dir(tmp_path):
    """Asset directory with a 100x20 chrome bar and a 1000x1000 phone frame."""

    root = tmp_path / "assets"
    root.mkdir()
    (root / CHROME_BAR).write_bytes(png_bytes(100, 20, (40, 40, 40, 255)))
    (root / PHONE_FRAME).write_bytes(png_bytes(1000, 1000, (0, 0, 0, 0)))
    return root
