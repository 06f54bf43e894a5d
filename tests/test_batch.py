import asyncio
from datetime import date, datetime, timezone

import pytest

from adshot.batch import run_batch, run_with_retry
from adshot.db.postgres import CampaignRow
from adshot.errors import NavigationError
from adshot.models import DeviceType, RenderJob, RenderResult, VisualizationType

NOW = datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc)  # 12:00 on 2025-03-10 in Buenos Aires
TODAY = date(2025, 3, 10)


class FlakyOrchestrator:
    """Fails the first ``failures`` attempts of every job."""

    def __init__(self, failures=0):
        self.failures = failures
        self.calls = []

    async def run(self, job, *, attempt=1, max_attempts=5):
        self.calls.append((job, attempt, max_attempts))
        if attempt <= self.failures:
            raise NavigationError("https://news.example/", attempt)
        return RenderResult(
            success=True,
            device_type=job.device_type,
            visualization_type=job.visualization_type,
            file_name=f"{attempt}.png",
            storage_id=f"capturas/{attempt}.png",
            storage_link=None,
        )


def _job():
    return RenderJob(DeviceType.DESKTOP, VisualizationType.A)


def _row(day, device, vis=None, **creatives):
    return CampaignRow(
        id=None,
        campaign_date=day,
        device_type=device,
        visualization_type=vis,
        folder_id=None,
        folder_name="acme",
        creatives=creatives,
    )


def test_retry_escalates_attempts_with_linear_backoff(sleep):
    orchestrator = FlakyOrchestrator(failures=2)
    job_result = asyncio.run(run_with_retry(orchestrator, _job(), max_retries=5, sleep=sleep))
    assert [attempt for _, attempt, _ in orchestrator.calls] == [1, 2, 3]
    assert sleep.calls == [15.0, 30.0]
    assert job_result.file_name == "3.png"


def test_retry_reraises_after_last_attempt(sleep):
    orchestrator = FlakyOrchestrator(failures=10)
    with pytest.raises(NavigationError):
        asyncio.run(run_with_retry(orchestrator, _job(), max_retries=3, sleep=sleep))
    assert len(orchestrator.calls) == 3
    assert sleep.calls == [15.0, 30.0]


def test_batch_runs_desktop_before_mobile_and_skips_future(sleep):
    past = date(2025, 3, 1)
    rows = {
        past: [
            _row(past, DeviceType.MOBILE, VisualizationType.B, ancho="https://cdn.example/a.png"),
            _row(past, DeviceType.DESKTOP, None, lateral="/image/1"),
        ],
        TODAY: [_row(TODAY, DeviceType.DESKTOP, VisualizationType.C, top="https://cdn.example/t.png")],
    }
    orchestrator = FlakyOrchestrator()
    archived = []

    async def archiver():
        archived.append(True)
        return {"desktop": True, "mobile": True}

    report = asyncio.run(
        run_batch(
            orchestrator,
            lambda day: rows.get(day, []),
            [past, TODAY, date(2025, 3, 11)],
            base_url="https://uploads.example",
            archiver=archiver,
            now=NOW,
            sleep=sleep,
        )
    )

    devices = [job.device_type for job, _, _ in orchestrator.calls]
    assert devices == [DeviceType.DESKTOP, DeviceType.DESKTOP, DeviceType.MOBILE]
    first = orchestrator.calls[0][0]
    assert first.target_date == past
    assert first.visualization_type is VisualizationType.A
    assert first.creative_urls["lateral"] == "https://uploads.example/image/1"
    assert orchestrator.calls[1][0].target_date is None
    assert report.skipped_dates == [date(2025, 3, 11)]
    assert archived == [True]
    assert report.as_dict()["desktop"][0]["campaign"] == "acme-desktop"


def test_batch_records_failed_jobs_and_continues(sleep):
    rows = [
        _row(TODAY, DeviceType.MOBILE, VisualizationType.D),  # D is desktop only
        _row(TODAY, DeviceType.MOBILE, VisualizationType.A, ancho="https://cdn.example/a.png"),
    ]
    orchestrator = FlakyOrchestrator()
    report = asyncio.run(run_batch(orchestrator, lambda day: rows, [TODAY], now=NOW, sleep=sleep))
    assert [r.success for r in report.mobile] == [False, True]
    assert "desktop" in report.mobile[0].error
    assert len(report.failed) == 1
