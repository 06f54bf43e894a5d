"""Sequential batch rendering of scheduled campaigns with per-job retries."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from .clock import is_future_date, region_today
from .db.postgres import CampaignRow, campaign_to_job
from .logging import jlog, joblog
from .models import DeviceType, RenderJob, RenderResult
from .orchestrator import ScreenshotOrchestrator

DEFAULT_MAX_RETRIES = 5
RETRY_BACKOFF_S = 15.0

Sleep = Callable[[float], Awaitable[None]]
CampaignSource = Callable[[date], Sequence[CampaignRow]]
Archiver = Callable[[], Awaitable[Any]]


async def run_with_retry(
    orchestrator: ScreenshotOrchestrator,
    job: RenderJob,
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    backoff_s: float = RETRY_BACKOFF_S,
    sleep: Sleep = asyncio.sleep,
) -> RenderResult:
    """Run ``job`` until it succeeds or ``max_retries`` attempts are spent.

    Attempt ``n`` uses navigation strategy ``n`` and is followed, on failure,
    by a ``n * backoff_s`` pause. The last failure is re-raised.
    """

    max_retries = max(1, max_retries)
    for attempt in range(1, max_retries + 1):
        try:
            result = await orchestrator.run(job, attempt=attempt, max_attempts=max_retries)
            joblog("job_succeeded", job=job, attempt=attempt)
            return result
        except Exception as exc:
            joblog("job_attempt_failed", job=job, level="warning", attempt=attempt, max_attempts=max_retries, error=str(exc))
            if attempt >= max_retries:
                joblog("job_exhausted", job=job, level="error", attempts=attempt)
                raise
            wait_s = attempt * backoff_s
            jlog("info", event="retry_backoff", attempt=attempt, wait_s=wait_s)
            await sleep(wait_s)
    raise AssertionError("unreachable")  # pragma: no cover


@dataclass(frozen=True)
class JobReport:
    day: date
    device_type: DeviceType
    campaign: str
    success: bool
    result: Optional[RenderResult] = None
    error: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "date": self.day.isoformat(),
            "device_type": self.device_type.value,
            "campaign": self.campaign,
            "success": self.success,
        }
        if self.result is not None:
            out.update(self.result.as_dict())
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass
class BatchReport:
    desktop: list[JobReport] = field(default_factory=list)
    mobile: list[JobReport] = field(default_factory=list)
    skipped_dates: list[date] = field(default_factory=list)
    archive: Optional[dict[str, bool]] = None

    def add(self, report: JobReport) -> None:
        getattr(self, report.device_type.value).append(report)

    @property
    def reports(self) -> list[JobReport]:
        return [*self.desktop, *self.mobile]

    @property
    def failed(self) -> list[JobReport]:
        return [r for r in self.reports if not r.success]

    def as_dict(self) -> dict[str, Any]:
        return {
            "desktop": [r.as_dict() for r in self.desktop],
            "mobile": [r.as_dict() for r in self.mobile],
            "skipped_dates": [d.isoformat() for d in self.skipped_dates],
            "archive": self.archive,
        }


async def run_batch(
    orchestrator: ScreenshotOrchestrator,
    campaigns_for: CampaignSource,
    dates: Iterable[date],
    *,
    base_url: str | None = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
    backoff_s: float = RETRY_BACKOFF_S,
    archiver: Optional[Archiver] = None,
    now: Optional[datetime] = None,
    sleep: Sleep = asyncio.sleep,
) -> BatchReport:
    """Render every campaign scheduled on ``dates``: all desktop jobs, then mobile.

    Future dates are skipped. A job that fails every attempt is recorded and
    the batch moves on. When today is among ``dates`` and an ``archiver`` is
    given, today's homepage HTML is archived after rendering.
    """

    today = region_today(now)
    report = BatchReport()
    runnable: list[date] = []
    for day in dict.fromkeys(dates):
        if is_future_date(day, now):
            jlog("warning", event="future_date_skipped", day=day.isoformat())
            report.skipped_dates.append(day)
        else:
            runnable.append(day)

    campaigns: dict[date, Sequence[CampaignRow]] = {}
    for day in runnable:
        campaigns[day] = await asyncio.to_thread(campaigns_for, day)
        jlog("info", event="campaigns_loaded", day=day.isoformat(), count=len(campaigns[day]))

    for device_type in (DeviceType.DESKTOP, DeviceType.MOBILE):
        for day in runnable:
            rows = [row for row in campaigns[day] if row.device_type is device_type]
            if not rows:
                jlog("info", event="no_campaigns", day=day.isoformat(), device_type=device_type.value)
                continue
            for row in rows:
                report.add(
                    await _render_campaign(
                        orchestrator, row, base_url=base_url, today=today, max_retries=max_retries, backoff_s=backoff_s, sleep=sleep
                    )
                )

    if archiver is not None and today in runnable:
        try:
            report.archive = await archiver()
        except Exception as exc:
            jlog("error", event="html_archive_error", error=str(exc))
            report.archive = {}

    jlog(
        "info",
        event="batch_summary",
        desktop=len(report.desktop),
        mobile=len(report.mobile),
        failed=len(report.failed),
        skipped_dates=[d.isoformat() for d in report.skipped_dates],
    )
    return report


async def _render_campaign(
    orchestrator: ScreenshotOrchestrator,
    row: CampaignRow,
    *,
    base_url: str | None,
    today: date,
    max_retries: int,
    backoff_s: float,
    sleep: Sleep,
) -> JobReport:
    try:
        job = campaign_to_job(row, base_url=base_url, today=today)
        result = await run_with_retry(orchestrator, job, max_retries=max_retries, backoff_s=backoff_s, sleep=sleep)
    except Exception as exc:
        jlog("error", event="campaign_failed", campaign=row.label, day=row.campaign_date.isoformat(), error=str(exc))
        return JobReport(day=row.campaign_date, device_type=row.device_type, campaign=row.label, success=False, error=str(exc))
    return JobReport(day=row.campaign_date, device_type=row.device_type, campaign=row.label, success=True, result=result)


__all__ = [
    "BatchReport",
    "DEFAULT_MAX_RETRIES",
    "JobReport",
    "RETRY_BACKOFF_S",
    "run_batch",
    "run_with_retry",
]
