"""Command-line configuration and entrypoints for capture and archive runs."""

from __future__ import annotations

import argparse
import json
import os
from dataclasses import dataclass, field
from datetime import date, timedelta

from google.cloud import storage  # type: ignore[attr-defined]

from .archive import archive_today
from .assets import DEFAULT_ASSETS_DIR, AssetLibrary
from .batch import DEFAULT_MAX_RETRIES, run_batch, run_with_retry
from .browser import BrowserSession
from .clock import is_future_date, parse_date, region_today
from .db.postgres import fetch_campaigns_by_date, sql_connect
from .errors import InvalidJobError
from .logging import jlog
from .models import SLOT_NAMES, RenderJob
from .orchestrator import DEFAULT_CAPTURE_FOLDER, DEFAULT_TARGET_URL, CaptureContext, ScreenshotOrchestrator
from .storage import GcsStorage, LocalStorage, Storage
from .urls import resolve_creative_urls

# ============================
# Constants & configuration
# ============================
DEFAULT_STORAGE_BACKEND = os.getenv("ADSHOT_STORAGE", "local")
DEFAULT_PROJECT_ID = os.getenv("ADSHOT_PROJECT_ID", "your-gcp-project")
DEFAULT_GCS_BUCKET = os.getenv("ADSHOT_GCS_BUCKET", "your-adshot-bucket")
DEFAULT_GCS_PREFIX = os.getenv("ADSHOT_GCS_PREFIX", "")
DEFAULT_LOCAL_DIR = os.getenv("ADSHOT_LOCAL_DIR", "media")
DEFAULT_PUBLIC_BASE_URL = os.getenv("ADSHOT_PUBLIC_BASE_URL")
DEFAULT_SQL_CONN = os.getenv("ADSHOT_SQL_CONN", "your-project:your-region:your-instance")
MAX_RANGE_DAYS = 366


@dataclass(frozen=True)
class CliArgs:
    storage_backend: str
    project_id: str
    gcs_bucket: str
    gcs_prefix: str
    local_dir: str
    sql_conn: str
    db_host: str | None
    db_port: int | None
    target_url: str
    public_base_url: str | None
    capture_folder: str
    assets_dir: str
    dates: list[date] = field(default_factory=list)
    device_type: str | None = None
    visualization_type: str | None = None
    creative_urls: dict[str, str] = field(default_factory=dict)
    target_date: date | None = None
    max_retries: int = DEFAULT_MAX_RETRIES
    archive_html: bool = True
    dry_run: bool = False
    debug_html: bool = False
    headless: bool = True
    job: RenderJob | None = None

    @property
    def single_job(self) -> bool:
        return self.device_type is not None


def _date_range(start: date, end: date) -> list[date]:
    if start > end:
        raise ValueError(f"start_date ({start}) is after end_date ({end})")
    days = (end - start).days + 1
    if days > MAX_RANGE_DAYS:
        raise ValueError(f"date range spans {days} days; the limit is {MAX_RANGE_DAYS}")
    return [start + timedelta(days=i) for i in range(days)]


def _resolve_dates(ns: argparse.Namespace) -> list[date]:
    """Explicit ``--date`` values win, then ``--start-date/--end-date``, then today."""

    if ns.date:
        return [parse_date(d) for d in ns.date]
    start, end = parse_date(ns.start_date), parse_date(ns.end_date)
    if start or end:
        return _date_range(start or end, end or start)
    return [region_today()]


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Render campaign creatives onto the homepage and upload framed screenshots")
    p.add_argument("--storage", dest="storage_backend", choices=["gcs", "local"], default=DEFAULT_STORAGE_BACKEND)
    p.add_argument("--project-id", default=DEFAULT_PROJECT_ID)
    p.add_argument("--gcs-bucket", default=DEFAULT_GCS_BUCKET)
    p.add_argument("--gcs-prefix", default=DEFAULT_GCS_PREFIX)
    p.add_argument("--local-dir", default=DEFAULT_LOCAL_DIR, help="Root directory for --storage local")
    p.add_argument("--sql-conn", default=DEFAULT_SQL_CONN)
    p.add_argument("--db-host")
    p.add_argument("--db-port", type=int)
    p.add_argument("--target-url", default=DEFAULT_TARGET_URL)
    p.add_argument(
        "--public-base-url",
        default=DEFAULT_PUBLIC_BASE_URL,
        help="Base URL that relative creative paths from campaign rows are resolved against.",
    )
    p.add_argument("--capture-folder", default=DEFAULT_CAPTURE_FOLDER)
    p.add_argument("--assets-dir", default=DEFAULT_ASSETS_DIR)
    p.add_argument("--date", action="append", help="Campaign date (YYYY-MM-DD); repeatable")
    p.add_argument("--start-date")
    p.add_argument("--end-date")
    p.add_argument(
        "--device",
        dest="device_type",
        choices=["desktop", "mobile"],
        help="Render a single job from the flags below instead of reading campaigns from the database.",
    )
    p.add_argument("--visualization", dest="visualization_type", choices=["A", "B", "C", "D"])
    for slot in SLOT_NAMES:
        p.add_argument(f"--{slot}", help=f"Creative URL for the {slot} slot (single-job mode)")
    p.add_argument("--target-date", help="Replay the archived homepage of this date (single-job mode)")
    p.add_argument(
        "--max-retries",
        type=int,
        default=DEFAULT_MAX_RETRIES,
        help=f"Attempts per job, each with a more tolerant navigation strategy (default: {DEFAULT_MAX_RETRIES})",
    )
    p.add_argument("--no-archive-html", dest="archive_html", action="store_false", help="Skip archiving today's HTML")
    p.add_argument("--dry-run", action="store_true", help="Render but do not write to storage")
    p.add_argument(
        "--debug-html",
        action="store_true",
        help="Dump page HTML to media/debug/page_<device>_<attempt>.html when a render fails.",
    )
    p.add_argument("--headed", dest="headless", action="store_false", help="Show the browser window")
    return p


def _single_job(parser: argparse.ArgumentParser, ns: argparse.Namespace, creative_urls: dict[str, str]) -> RenderJob:
    """Build the ``--device`` job; invalid combinations exit through ``parser.error``."""

    target_date = parse_date(ns.target_date)
    if target_date is not None and is_future_date(target_date):
        parser.error(f"--target-date {target_date.isoformat()} is in the future")
    try:
        return RenderJob(
            device_type=ns.device_type,
            visualization_type=ns.visualization_type,
            creative_urls=resolve_creative_urls(creative_urls, ns.public_base_url),
            target_date=target_date,
        )
    except InvalidJobError as exc:
        parser.error(str(exc))


def parse_args(argv: list[str] | None = None) -> CliArgs:
    parser = build_parser()
    ns = parser.parse_args(argv)
    if ns.max_retries < 1:
        raise ValueError("--max-retries must be at least 1")
    creative_urls = {slot: getattr(ns, slot) for slot in SLOT_NAMES if getattr(ns, slot)}
    if creative_urls and not ns.device_type:
        raise ValueError("creative URL flags require --device")
    job = _single_job(parser, ns, creative_urls) if ns.device_type else None
    return CliArgs(
        storage_backend=ns.storage_backend,
        project_id=ns.project_id,
        gcs_bucket=ns.gcs_bucket,
        gcs_prefix=ns.gcs_prefix,
        local_dir=ns.local_dir,
        sql_conn=ns.sql_conn,
        db_host=ns.db_host,
        db_port=ns.db_port,
        target_url=ns.target_url,
        public_base_url=ns.public_base_url,
        capture_folder=ns.capture_folder,
        assets_dir=ns.assets_dir,
        dates=_resolve_dates(ns),
        device_type=ns.device_type,
        visualization_type=ns.visualization_type,
        creative_urls=creative_urls,
        target_date=parse_date(ns.target_date),
        max_retries=ns.max_retries,
        archive_html=ns.archive_html,
        dry_run=ns.dry_run,
        debug_html=ns.debug_html,
        headless=ns.headless,
        job=job,
    )


def build_storage(args: CliArgs, *, storage_client: storage.Client | None = None) -> Storage:
    if args.storage_backend == "gcs":
        storage_client = storage_client or storage.Client(project=args.project_id)
        jlog("info", event="gcp_context", project_id=args.project_id, gcs_bucket=args.gcs_bucket, prefix=args.gcs_prefix)
        return GcsStorage(storage_client, args.gcs_bucket, prefix=args.gcs_prefix, dry_run=args.dry_run)
    jlog("info", event="local_storage", base_dir=args.local_dir)
    return LocalStorage(args.local_dir, dry_run=args.dry_run)


def build_context(args: CliArgs, storage_backend: Storage) -> CaptureContext:
    return CaptureContext(
        storage=storage_backend,
        assets=AssetLibrary(args.assets_dir),
        target_url=args.target_url,
        capture_folder=args.capture_folder,
        session_factory=lambda device_type: BrowserSession(device_type, headless=args.headless),
        debug_html=args.debug_html,
    )


async def run(args: CliArgs, *, storage_client: storage.Client | None = None) -> dict:
    """Execute a capture run and return its JSON-serialisable report."""

    backend = build_storage(args, storage_client=storage_client)
    orchestrator = ScreenshotOrchestrator(build_context(args, backend))

    if args.job is not None:
        result = await run_with_retry(orchestrator, args.job, max_retries=args.max_retries)
        report = result.as_dict()
        jlog("info", event="single_job_done", **report)
        return report

    con = sql_connect(args.sql_conn, args.db_host, args.db_port)
    con.autocommit = True
    try:
        archiver = (lambda: archive_today(backend, args.target_url)) if args.archive_html else None
        batch = await run_batch(
            orchestrator,
            lambda day: fetch_campaigns_by_date(con, day),
            args.dates,
            base_url=args.public_base_url,
            max_retries=args.max_retries,
            archiver=archiver,
        )
    finally:
        con.close()
    return batch.as_dict()


async def run_archive(args: CliArgs, *, storage_client: storage.Client | None = None) -> dict[str, bool]:
    """Archive today's homepage HTML for desktop and mobile."""

    backend = build_storage(args, storage_client=storage_client)
    return await archive_today(backend, args.target_url)


def dump_report(report: dict) -> str:
    return json.dumps(report, ensure_ascii=False, indent=2, default=str)


__all__ = [
    "CliArgs",
    "build_context",
    "build_parser",
    "build_storage",
    "dump_report",
    "parse_args",
    "run",
    "run_archive",
]
