#!/usr/bin/env python3
"""CLI shim for the campaign screenshot run.

Delegates to :mod:`adshot.cli` so schedulers can keep invoking
``scripts/capture_screenshots.py`` directly.
"""
from __future__ import annotations

import asyncio
import sys

from adshot.cli import CliArgs, dump_report, parse_args, run
from adshot.logging import configure_logging, logging_context, set_global_context
from adshot.versioning import get_capture_version

SCRIPT_NAME = "capture"


def main() -> None:
    """Parse CLI arguments and render every scheduled campaign."""
    configure_logging()
    set_global_context(app="adshot", pipeline=SCRIPT_NAME)
    with logging_context(script=SCRIPT_NAME, capture_version=get_capture_version()):
        args: CliArgs = parse_args()
        report = asyncio.run(run(args))
    print(dump_report(report))
    failed = [r for r in report.get("desktop", []) + report.get("mobile", []) if not r.get("success")]
    if failed or report.get("success") is False:
        sys.exit(1)


if __name__ == "__main__":
    main()
