"""Metadata attached to uploaded screenshots."""

from __future__ import annotations

from collections import OrderedDict
from datetime import date
from typing import OrderedDict as OrderedDictType


def build_capture_metadata(
    *,
    device_type: str,
    visualization_type: str | None,
    width: int,
    height: int,
    sha256: str,
    capture_version: str,
    source: str,
    target_date: date | None = None,
    failed_slots: list[str] | None = None,
) -> OrderedDictType[str, str]:
    """Return metadata with deterministic ordering for auditability."""

    md: OrderedDictType[str, str] = OrderedDict()
    md["device_type"] = device_type
    md["visualization_type"] = visualization_type or ""
    md["width"] = str(width)
    md["height"] = str(height)
    md["sha256"] = sha256
    md["capture_version"] = capture_version
    md["source"] = source
    if target_date:
        md["target_date"] = target_date.isoformat()
    if failed_slots:
        md["failed_slots"] = ",".join(failed_slots)
    return md


__all__ = ["build_capture_metadata"]
