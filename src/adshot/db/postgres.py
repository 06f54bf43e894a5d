"""Postgres reads of scheduled campaigns."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

import psycopg2

from ..logging import jlog
from ..models import DeviceType, RenderJob, VisualizationType, parse_device_type, parse_visualization_type
from ..urls import resolve_creative_urls

CAMPAIGN_COLUMNS = (
    "id",
    "campaign_date",
    "device_type",
    "visualization_type",
    "folder_id",
    "folder_name",
    "lateral",
    "ancho",
    "top",
    "itt",
    "zocalo",
    "uploaded_at",
)

_SELECT = f"SELECT {', '.join(CAMPAIGN_COLUMNS)} FROM campaigns"


def sql_connect(sql_conn: str | None, db_host: str | None = None, db_port: int | None = None):
    """Return a psycopg2 connection using either TCP or a Cloud SQL socket."""

    dbname = os.getenv("DB_NAME", "adshot")
    user = os.getenv("DB_USER", "postgres")
    password = os.getenv("DB_PASSWORD")
    if not password:
        raise RuntimeError("DB_PASSWORD environment variable is required for database connections")

    if db_host:
        return psycopg2.connect(
            host=db_host,
            port=db_port or 5432,
            dbname=dbname,
            user=user,
            password=password,
            connect_timeout=10,
            sslmode=os.getenv("DB_SSLMODE", "prefer"),
        )

    if not sql_conn:
        raise RuntimeError("sql_conn must be provided when db_host is not set")
    return psycopg2.connect(
        host=f"/cloudsql/{sql_conn}",
        dbname=dbname,
        user=user,
        password=password,
        connect_timeout=10,
    )


@dataclass(frozen=True)
class CampaignRow:
    """One scheduled creative set for a single date and device."""

    id: Any
    campaign_date: date
    device_type: DeviceType
    visualization_type: Optional[VisualizationType]
    folder_id: Optional[str]
    folder_name: Optional[str]
    creatives: dict[str, Optional[str]]
    uploaded_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "CampaignRow":
        raw_date = record["campaign_date"]
        return cls(
            id=record.get("id"),
            campaign_date=raw_date if isinstance(raw_date, date) else date.fromisoformat(str(raw_date)),
            device_type=parse_device_type(record["device_type"]),
            visualization_type=parse_visualization_type(record.get("visualization_type")),
            folder_id=record.get("folder_id") or None,
            folder_name=record.get("folder_name") or None,
            creatives={slot: record.get(slot) for slot in ("lateral", "ancho", "top", "itt", "zocalo")},
            uploaded_at=record.get("uploaded_at"),
        )

    @property
    def label(self) -> str:
        """Human-readable campaign name: ``<folder>-<device>[-<vis>]``."""

        parts = [self.folder_name or "sin-carpeta", self.device_type.value]
        if self.visualization_type is not None:
            parts.append(self.visualization_type.value)
        return "-".join(parts)


def _fetch(con, sql: str, params: tuple) -> list[CampaignRow]:
    with con.cursor() as cur:
        cur.execute(sql, params)
        cols = [d[0] for d in cur.description]
        rows = cur.fetchall()
    campaigns: list[CampaignRow] = []
    for row in rows:
        record = dict(zip(cols, row))
        try:
            campaigns.append(CampaignRow.from_record(record))
        except ValueError as exc:
            jlog("warning", event="campaign_row_skipped", campaign_id=record.get("id"), error=str(exc))
    return campaigns


def fetch_campaigns_by_date(con, day: date) -> list[CampaignRow]:
    """Campaigns scheduled for ``day``, oldest upload first."""

    return _fetch(con, f"{_SELECT} WHERE campaign_date = %s ORDER BY uploaded_at ASC", (day,))


def fetch_campaigns_in_range(con, start: date, end: date) -> list[CampaignRow]:
    """Campaigns scheduled between ``start`` and ``end`` inclusive."""

    return _fetch(
        con,
        f"{_SELECT} WHERE campaign_date BETWEEN %s AND %s ORDER BY campaign_date ASC, uploaded_at ASC",
        (start, end),
    )


def campaign_to_job(row: CampaignRow, *, base_url: str | None, today: date) -> RenderJob:
    """Build the render job for ``row``.

    Desktop campaigns without a visualization type render as ``A``. Dates
    before ``today`` replay the archived homepage.
    """

    visualization_type = row.visualization_type
    if visualization_type is None and row.device_type is DeviceType.DESKTOP:
        visualization_type = VisualizationType.A
    return RenderJob(
        device_type=row.device_type,
        visualization_type=visualization_type,
        creative_urls=resolve_creative_urls(row.creatives, base_url),
        target_date=row.campaign_date if row.campaign_date < today else None,
        folder_id=row.folder_id,
    )


__all__ = [
    "CAMPAIGN_COLUMNS",
    "CampaignRow",
    "campaign_to_job",
    "fetch_campaigns_by_date",
    "fetch_campaigns_in_range",
    "sql_connect",
]
