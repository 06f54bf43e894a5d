"""Value types passed between the capture stages."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Any, Optional

from .errors import InvalidJobError


class DeviceType(str, Enum):
    DESKTOP = "desktop"
    MOBILE = "mobile"


class VisualizationType(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"


SLOT_NAMES = ("lateral", "ancho", "top", "itt", "zocalo")

# Extra insertion entry reported for layouts that draw a close button.
CLOSE_ICON_KEY = "close_icon"


def parse_device_type(value: str | DeviceType) -> DeviceType:
    try:
        return DeviceType(str(getattr(value, "value", value)).lower())
    except ValueError as exc:
        raise InvalidJobError(f"unknown device type: {value!r}") from exc


def parse_visualization_type(value: str | VisualizationType | None) -> VisualizationType | None:
    if value is None or value == "":
        return None
    try:
        return VisualizationType(str(getattr(value, "value", value)).upper())
    except ValueError as exc:
        raise InvalidJobError(f"unknown visualization type: {value!r}") from exc


@dataclass(frozen=True)
class RenderJob:
    """One unit of work producing exactly one composited screenshot."""

    device_type: DeviceType
    visualization_type: Optional[VisualizationType] = None
    creative_urls: Mapping[str, str] = field(default_factory=dict)
    target_date: Optional[date] = None
    folder_id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "device_type", parse_device_type(self.device_type))
        object.__setattr__(self, "visualization_type", parse_visualization_type(self.visualization_type))
        if self.device_type is DeviceType.MOBILE and self.visualization_type is VisualizationType.D:
            raise InvalidJobError("visualization type D is only defined for desktop")
        unknown = sorted(set(self.creative_urls) - set(SLOT_NAMES))
        if unknown:
            raise InvalidJobError(f"unknown creative slots: {', '.join(unknown)}")
        urls = {k: v for k, v in self.creative_urls.items() if v}
        object.__setattr__(self, "creative_urls", MappingProxyType(urls))

    @property
    def is_historical(self) -> bool:
        return self.target_date is not None


@dataclass(frozen=True, slots=True)
class SlotOutcome:
    found: bool = False
    inserted: bool = False
    error: Optional[str] = None
    position: Optional[dict[str, str]] = None

    @classmethod
    def from_page(cls, payload: Mapping[str, Any] | None) -> "SlotOutcome":
        payload = payload or {}
        position = payload.get("position")
        return cls(
            found=bool(payload.get("found")),
            inserted=bool(payload.get("inserted")),
            error=payload.get("error") or None,
            position=dict(position) if position else None,
        )

    def as_dict(self) -> dict[str, Any]:
        return {"found": self.found, "inserted": self.inserted, "error": self.error, "position": self.position}


@dataclass(frozen=True)
class InsertionResult:
    """Per-slot outcome of a creative injection run."""

    outcomes: Mapping[str, SlotOutcome] = field(default_factory=dict)

    def __getitem__(self, slot: str) -> SlotOutcome:
        return self.outcomes[slot]

    def __contains__(self, slot: object) -> bool:
        return slot in self.outcomes

    @property
    def all_inserted(self) -> bool:
        return all(o.inserted for o in self.outcomes.values())

    @property
    def failed_slots(self) -> list[str]:
        return [name for name, o in self.outcomes.items() if not o.inserted]

    def as_dict(self) -> dict[str, dict[str, Any]]:
        return {name: o.as_dict() for name, o in self.outcomes.items()}


@dataclass(frozen=True, slots=True)
class NavigationAttempt:
    index: int
    wait_until: str
    timeout_ms: int
    user_agent: Optional[str] = None

    @property
    def name(self) -> str:
        return f"{self.wait_until} ({self.timeout_ms // 1000}s)"


@dataclass(frozen=True, slots=True)
class CompositeArtifact:
    file_name: str
    content: bytes
    width: int
    height: int
    mime_type: str = "image/png"


@dataclass(frozen=True)
class RenderResult:
    success: bool
    device_type: DeviceType
    visualization_type: Optional[VisualizationType]
    file_name: str
    storage_id: str
    storage_link: Optional[str]
    insertion: Optional[InsertionResult] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "device_type": self.device_type.value,
            "visualization_type": self.visualization_type.value if self.visualization_type else None,
            "file_name": self.file_name,
            "storage_id": self.storage_id,
            "storage_link": self.storage_link,
            "insertion": self.insertion.as_dict() if self.insertion else None,
        }


__all__ = [
    "CLOSE_ICON_KEY",
    "CompositeArtifact",
    "DeviceType",
    "InsertionResult",
    "NavigationAttempt",
    "RenderJob",
    "RenderResult",
    "SLOT_NAMES",
    "SlotOutcome",
    "VisualizationType",
    "parse_device_type",
    "parse_visualization_type",
]
