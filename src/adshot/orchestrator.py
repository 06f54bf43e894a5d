"""Per-job capture sequence: browser, page, creatives, frame, upload.

A :class:`ScreenshotOrchestrator` owns nothing between jobs. Everything it
needs (storage, compositor, injector, clock, browser factory) arrives through
an explicit :class:`CaptureContext`, so two orchestrators never share state
and tests can swap any collaborator for a fake.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .ad_stripper import strip_ads
from .assets import AssetLibrary
from .browser import BrowserSession, wait_assets_ready
from .clock import artifact_file_name, region_now
from .compositor import FrameCompositor
from .debug import dump_page_html
from .errors import UploadError
from .hashing import png_digest
from .historical import DEFAULT_ARCHIVE_FOLDER, HistoricalPageLoader
from .injector import CreativeInjector, layout_for
from .logging import joblog, logging_context
from .metadata import build_capture_metadata
from .models import CompositeArtifact, DeviceType, InsertionResult, RenderJob, RenderResult
from .navigation import navigate, select_attempt
from .storage import Storage, StoredFile
from .versioning import get_capture_version

DEFAULT_TARGET_URL = os.getenv("ADSHOT_TARGET_URL", "https://www.losandes.com.ar/")
DEFAULT_CAPTURE_FOLDER = os.getenv("ADSHOT_CAPTURE_FOLDER", "capturas")
PAGE_SETTLE_S = 3.0
INSERTION_SETTLE_S = 2.0

SessionFactory = Callable[[DeviceType], Any]
Sleep = Callable[[float], Awaitable[None]]


@dataclass
class CaptureContext:
    """Collaborators shared by every job of one run."""

    storage: Storage
    assets: AssetLibrary = field(default_factory=AssetLibrary)
    target_url: str = DEFAULT_TARGET_URL
    capture_folder: str = DEFAULT_CAPTURE_FOLDER
    archive_folder: str = DEFAULT_ARCHIVE_FOLDER
    session_factory: SessionFactory = BrowserSession
    sleep: Sleep = asyncio.sleep
    now: Callable[[], Optional[datetime]] = lambda: None
    debug_html: bool = False
    compositor: Optional[FrameCompositor] = None
    injector: Optional[CreativeInjector] = None
    historical: Optional[HistoricalPageLoader] = None

    def __post_init__(self) -> None:
        if self.compositor is None:
            self.compositor = FrameCompositor(self.assets)
        if self.injector is None:
            self.injector = CreativeInjector(self.assets, sleep=self.sleep)
        if self.historical is None:
            self.historical = HistoricalPageLoader(
                self.storage, self.target_url, folder_id=self.archive_folder, sleep=self.sleep
            )


class ScreenshotOrchestrator:
    def __init__(self, context: CaptureContext) -> None:
        self.ctx = context

    async def run(self, job: RenderJob, *, attempt: int = 1, max_attempts: int = 5) -> RenderResult:
        """Render ``job`` once and upload the framed screenshot.

        ``attempt`` selects the navigation strategy. The browser is torn down
        whatever happens; navigation and upload failures propagate.
        """

        strategy = select_attempt(attempt)
        with logging_context(device_type=job.device_type.value, attempt=attempt):
            joblog("render_start", job=job, strategy=strategy.name, max_attempts=max_attempts)
            async with self.ctx.session_factory(job.device_type) as session:
                page = await session.new_page(user_agent=strategy.user_agent, grant_origin=self.ctx.target_url)
                try:
                    screenshot, insertion, source = await self._capture(page, job, attempt, max_attempts)
                except Exception as exc:
                    joblog("render_failed", job=job, level="error", error=str(exc), error_type=type(exc).__name__)
                    if self.ctx.debug_html:
                        await dump_page_html(page, f"{job.device_type.value}_{attempt}")
                    raise

                artifact = await asyncio.to_thread(self._compose, job, screenshot)
                stored = await asyncio.to_thread(self._upload, job, artifact, insertion, source)

            joblog(
                "render_done",
                job=job,
                file_name=artifact.file_name,
                storage_id=stored.id,
                link=stored.web_view_link,
                failed_slots=insertion.failed_slots,
            )
            return RenderResult(
                success=True,
                device_type=job.device_type,
                visualization_type=job.visualization_type,
                file_name=artifact.file_name,
                storage_id=stored.id,
                storage_link=stored.web_view_link,
                insertion=insertion,
            )

    async def _capture(
        self, page: Any, job: RenderJob, attempt: int, max_attempts: int
    ) -> tuple[bytes, InsertionResult, str]:
        ctx = self.ctx
        source = "live"
        if job.target_date is not None:
            if await ctx.historical.load(page, job.device_type, job.target_date):
                source = "archive"
        else:
            await navigate(page, ctx.target_url, attempt, max_attempts)
            await wait_assets_ready(page)
        joblog("page_loaded", job=job, source=source)

        await ctx.sleep(PAGE_SETTLE_S)
        await strip_ads(page)

        insertion = InsertionResult()
        if job.creative_urls and layout_for(job.device_type, job.visualization_type) is not None:
            insertion = await ctx.injector.inject(page, job.device_type, job.visualization_type, job.creative_urls)
            await ctx.sleep(INSERTION_SETTLE_S)
        else:
            joblog("injection_skipped", job=job, creatives=len(job.creative_urls))

        screenshot = await page.screenshot(type="png", full_page=False)
        return screenshot, insertion, source

    def _compose(self, job: RenderJob, screenshot: bytes) -> CompositeArtifact:
        now = self.ctx.now() or region_now()
        content = self.ctx.compositor.compose(screenshot, job.device_type, job.target_date, now)
        _, width, height = png_digest(content)
        file_name = artifact_file_name(job.device_type, job.visualization_type, target_date=job.target_date, now=now)
        return CompositeArtifact(file_name=file_name, content=content, width=width, height=height)

    def _upload(self, job: RenderJob, artifact: CompositeArtifact, insertion: InsertionResult, source: str) -> StoredFile:
        sha256, _, _ = png_digest(artifact.content)
        metadata = build_capture_metadata(
            device_type=job.device_type.value,
            visualization_type=job.visualization_type.value if job.visualization_type else None,
            width=artifact.width,
            height=artifact.height,
            sha256=sha256,
            capture_version=get_capture_version(),
            source=source,
            target_date=job.target_date,
            failed_slots=insertion.failed_slots,
        )
        folder_id = job.folder_id or self.ctx.capture_folder
        try:
            return self.ctx.storage.upload_buffer(folder_id, artifact.file_name, artifact.content, artifact.mime_type, metadata)
        except UploadError:
            raise
        except Exception as exc:
            raise UploadError(f"upload of {artifact.file_name} to {folder_id} failed: {exc}") from exc


__all__ = [
    "CaptureContext",
    "DEFAULT_CAPTURE_FOLDER",
    "DEFAULT_TARGET_URL",
    "ScreenshotOrchestrator",
]
