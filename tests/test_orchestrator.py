import asyncio
from datetime import date, datetime, timezone

import pytest
from fakes import FakePage, FakeSession, FakeStorage
from playwright.async_api import Error as PlaywrightError

from adshot.assets import AssetLibrary
from adshot.errors import NavigationError, UploadError
from adshot.models import DeviceType, RenderJob, VisualizationType
from adshot.navigation import NAVIGATION_STRATEGIES
from adshot.orchestrator import CaptureContext, ScreenshotOrchestrator

TARGET = "https://news.example/"
NOW = datetime(2025, 3, 10, 2, 30, 15, tzinfo=timezone.utc)


def page_script(script, arg):
    if isinstance(arg, dict) and "placements" in arg:
        return {slot: {"found": True, "inserted": True} for slot in arg["urls"]}
    if isinstance(arg, dict):
        return {"anchorFound": True, "scrollY": 0}
    if isinstance(arg, list):
        return {}
    return None


def _step(name, arg):
    if name != "evaluate":
        return name
    if isinstance(arg, list):
        return "strip"
    if isinstance(arg, dict):
        return "insert" if "placements" in arg else "prepare"
    return "wait_images"


def _setup(assets_dir, sleep, *, page=None, storage=None):
    page = page or FakePage(on_evaluate=page_script)
    storage = storage or FakeStorage()
    sessions = []

    def factory(device_type):
        session = FakeSession(device_type, page)
        sessions.append(session)
        return session

    ctx = CaptureContext(
        storage=storage,
        assets=AssetLibrary(assets_dir),
        target_url=TARGET,
        session_factory=factory,
        sleep=sleep,
        now=lambda: NOW,
    )
    return ScreenshotOrchestrator(ctx), page, storage, sessions


def test_live_capture_runs_steps_in_order(assets_dir, sleep):
    orchestrator, page, storage, sessions = _setup(assets_dir, sleep)
    job = RenderJob(DeviceType.DESKTOP, VisualizationType.A, {"lateral": "https://cdn.example/l.png"})

    result = asyncio.run(orchestrator.run(job))

    assert [_step(n, a) for n, a in page.calls] == ["goto", "wait_images", "strip", "prepare", "insert", "screenshot"]
    assert page.calls[-1] == ("screenshot", {"type": "png", "full_page": False})
    assert sleep.calls == [3.0, 2.0, 2.0]
    assert sessions[0].exited
    assert sessions[0].new_page_kwargs == {"user_agent": None, "grant_origin": TARGET}

    assert result.success
    assert result.file_name == "2025-03-09-23-30-15-A-desktop.png"
    assert result.storage_id == "capturas/2025-03-09-23-30-15-A-desktop.png"
    upload = storage.uploads[0]
    assert upload["mime_type"] == "image/png"
    assert upload["metadata"]["source"] == "live"
    assert result.insertion["lateral"].inserted


def test_attempt_number_selects_user_agent_and_wait(assets_dir, sleep):
    orchestrator, page, _, sessions = _setup(assets_dir, sleep)
    asyncio.run(orchestrator.run(RenderJob(DeviceType.MOBILE), attempt=3))
    assert sessions[0].new_page_kwargs["user_agent"] == NAVIGATION_STRATEGIES[2].user_agent
    assert page.calls[0][1]["wait_until"] == "load"


def test_job_without_layout_skips_injection(assets_dir, sleep):
    orchestrator, page, storage, _ = _setup(assets_dir, sleep)
    result = asyncio.run(orchestrator.run(RenderJob(DeviceType.MOBILE, None, {"ancho": "https://cdn.example/a.png"})))
    assert "insert" not in [_step(n, a) for n, a in page.calls]
    assert result.file_name == "2025-03-09-23-30-15-mobile.png"
    assert result.insertion.outcomes == {}


def test_historical_job_replays_archive(assets_dir, sleep):
    storage = FakeStorage()
    storage.upload_buffer("html", "2025-01-05_desktop.html", b"<html>old</html>", "text/html")
    orchestrator, page, storage, _ = _setup(assets_dir, sleep, storage=storage)
    job = RenderJob(DeviceType.DESKTOP, VisualizationType.C, {"top": "https://cdn.example/t.png"}, target_date=date(2025, 1, 5))

    result = asyncio.run(orchestrator.run(job))

    assert "goto" not in page.names()
    assert result.file_name == "2025-01-05-00-00-00-C-desktop.png"
    assert storage.uploads[-1]["metadata"]["source"] == "archive"
    assert storage.uploads[-1]["metadata"]["target_date"] == "2025-01-05"


def test_navigation_failure_propagates_and_tears_down(assets_dir, sleep):
    page = FakePage(goto_error=PlaywrightError("Timeout 90000ms exceeded"))
    orchestrator, page, storage, sessions = _setup(assets_dir, sleep, page=page)
    with pytest.raises(NavigationError):
        asyncio.run(orchestrator.run(RenderJob(DeviceType.DESKTOP, VisualizationType.A)))
    assert sessions[0].exited
    assert "screenshot" not in page.names()
    assert storage.uploads == []


def test_upload_failure_propagates_as_upload_error(assets_dir, sleep):
    storage = FakeStorage(fail_upload=RuntimeError("quota exceeded"))
    orchestrator, _, _, sessions = _setup(assets_dir, sleep, storage=storage)
    with pytest.raises(UploadError, match="quota exceeded"):
        asyncio.run(orchestrator.run(RenderJob(DeviceType.DESKTOP, VisualizationType.B)))
    assert sessions[0].exited


def test_job_folder_overrides_capture_folder(assets_dir, sleep):
    orchestrator, _, storage, _ = _setup(assets_dir, sleep)
    asyncio.run(orchestrator.run(RenderJob(DeviceType.DESKTOP, VisualizationType.B, folder_id="acme")))
    assert storage.uploads[0]["key"].startswith("acme/")
