"""Region-local dates, artifact names and display labels.

Captures are named and labelled in the operating region's wall-clock time,
not the server's. Historical captures use the replayed calendar date with a
zeroed time.
"""

from __future__ import annotations

import os
from datetime import date, datetime
from zoneinfo import ZoneInfo

from .models import DeviceType, VisualizationType

REGION_TIMEZONE = os.getenv("ADSHOT_TIMEZONE", "America/Argentina/Buenos_Aires")

WEEKDAYS_ES = ("Lun", "Mar", "Mié", "Jue", "Vie", "Sáb", "Dom")
MONTHS_ES = ("ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sep", "oct", "nov", "dic")


def region_tz() -> ZoneInfo:
    return ZoneInfo(REGION_TIMEZONE)


def region_now(now: datetime | None = None) -> datetime:
    """Return ``now`` (or the current instant) converted to region-local time."""

    if now is None:
        return datetime.now(region_tz())
    if now.tzinfo is None:
        return now.replace(tzinfo=region_tz())
    return now.astimezone(region_tz())


def region_today(now: datetime | None = None) -> date:
    return region_now(now).date()


def parse_date(value: str | date | None) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())


def is_future_date(day: date, now: datetime | None = None) -> bool:
    return day > region_today(now)


def capture_timestamp(target_date: date | None = None, now: datetime | None = None) -> str:
    """Return ``YYYY-MM-DD-HH-MM-SS`` in region time, zeroed for historical dates."""

    if target_date is not None:
        return f"{target_date.isoformat()}-00-00-00"
    return region_now(now).strftime("%Y-%m-%d-%H-%M-%S")


def artifact_file_name(
    device_type: DeviceType,
    visualization_type: VisualizationType | None,
    *,
    target_date: date | None = None,
    now: datetime | None = None,
) -> str:
    parts = [capture_timestamp(target_date, now)]
    if visualization_type is not None:
        parts.append(visualization_type.value)
    parts.append(device_type.value)
    return "-".join(parts) + ".png"


def archive_file_name(day: date, device_type: DeviceType) -> str:
    return f"{day.isoformat()}_{device_type.value}.html"


def date_label(target_date: date | None = None, now: datetime | None = None) -> str:
    """Spanish short label shown in the synthetic browser frame.

    ``Lun 5 de ene.`` for historical dates; live captures append ``HH:MM``.
    """

    if target_date is not None:
        day = target_date
        clock = None
    else:
        local = region_now(now)
        day = local.date()
        clock = local.strftime("%H:%M")
    label = f"{WEEKDAYS_ES[day.weekday()]} {day.day} de {MONTHS_ES[day.month - 1]}."
    return f"{label} {clock}" if clock else label


__all__ = [
    "REGION_TIMEZONE",
    "archive_file_name",
    "artifact_file_name",
    "capture_timestamp",
    "date_label",
    "is_future_date",
    "parse_date",
    "region_now",
    "region_today",
]
