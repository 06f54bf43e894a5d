"""Homepage screenshot compositing for scheduled ad campaigns."""

from .browser import CHROMIUM_LAUNCH_ARGS, BrowserSession, wait_assets_ready
from .clock import archive_file_name, artifact_file_name, date_label
from .compositor import FrameCompositor
from .errors import AdshotError, InvalidJobError, NavigationError, UploadError
from .historical import HistoricalPageLoader
from .injector import CreativeInjector, layout_for
from .logging import jlog, joblog
from .models import DeviceType, InsertionResult, RenderJob, RenderResult, VisualizationType
from .navigation import NAVIGATION_STRATEGIES, navigate, select_attempt
from .orchestrator import CaptureContext, ScreenshotOrchestrator
from .storage import GcsStorage, LocalStorage, StoredFile
from .versioning import get_capture_version

__all__ = [
    "AdshotError",
    "archive_file_name",
    "artifact_file_name",
    "BrowserSession",
    "CaptureContext",
    "CreativeInjector",
    "date_label",
    "DeviceType",
    "FrameCompositor",
    "GcsStorage",
    "get_capture_version",
    "HistoricalPageLoader",
    "InsertionResult",
    "InvalidJobError",
    "jlog",
    "joblog",
    "layout_for",
    "LocalStorage",
    "navigate",
    "NAVIGATION_STRATEGIES",
    "NavigationError",
    "RenderJob",
    "RenderResult",
    "ScreenshotOrchestrator",
    "select_attempt",
    "StoredFile",
    "UploadError",
    "VisualizationType",
    "wait_assets_ready",
    "CHROMIUM_LAUNCH_ARGS",
]
