"""Capture version resolution helpers."""

from __future__ import annotations

import os

SCRIPT_NAME = "adshot"
SCRIPT_VERSION = "2025-11-06.1"


def get_capture_version(script_name: str = SCRIPT_NAME, script_version: str = SCRIPT_VERSION) -> str:
    """Return a human-readable version string with an env override."""

    return os.getenv("ADSHOT_VERSION", f"{script_name}:{script_version}")


__all__ = ["get_capture_version"]
