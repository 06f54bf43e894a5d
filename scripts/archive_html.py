#!/usr/bin/env python3
"""CLI shim that archives today's homepage HTML for desktop and mobile."""
from __future__ import annotations

import asyncio

from adshot.cli import CliArgs, dump_report, parse_args, run_archive
from adshot.logging import configure_logging, logging_context, set_global_context
from adshot.versioning import get_capture_version

SCRIPT_NAME = "archive"


def main() -> None:
    configure_logging()
    set_global_context(app="adshot", pipeline=SCRIPT_NAME)
    with logging_context(script=SCRIPT_NAME, capture_version=get_capture_version()):
        args: CliArgs = parse_args()
        results = asyncio.run(run_archive(args))
    print(dump_report(results))


if __name__ == "__main__":
    main()
