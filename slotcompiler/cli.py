#!/usr/bin/env python3
"""Compile pages into the shared layout.

Usage:
  slotc [SRC] [OUT] [--watch] [--config site.yaml] [--log-file build.log]

  SRC   source directory holding _layout.html, pages and assets (default: src)
  OUT   output directory (default: dist)

Exit status: 0 success, 1 missing source/layout or bad config,
2 build finished with failed pages.
"""

from __future__ import annotations

import argparse
import queue
import sys
import threading

from slotcompiler.compiler import FatalBuildError, SiteCompiler
from slotcompiler.config import ConfigError, load_config
from slotcompiler.log import log, set_log_file
from slotcompiler.scheduler import RebuildScheduler, start_watcher

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PAGES_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="slotc",
        description="Merge page slot content into a shared _layout.html.",
    )
    ap.add_argument("src", nargs="?", default=None, help="Source directory (default: src)")
    ap.add_argument("out", nargs="?", default=None, help="Output directory (default: dist)")
    ap.add_argument("--watch", action="store_true", help="Rebuild on source changes")
    ap.add_argument("--config", metavar="FILE", default=None, help="YAML config file")
    ap.add_argument("--log-file", metavar="FILE", default=None,
                    help="Also append log lines to FILE")
    return ap


def watch(compiler: SiteCompiler) -> None:
    events: "queue.Queue[str]" = queue.Queue()
    scheduler = RebuildScheduler(compiler)
    stop = threading.Event()

    log("Watching for changes…", "Watch")
    observer = start_watcher(compiler.src_dir, events, compiler.config.poll_interval_seconds)
    try:
        scheduler.run(events, stop)
    except KeyboardInterrupt:
        log("Stopped.", "Watch")
    finally:
        stop.set()
        observer.stop()
        observer.join()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        log(str(e), "Error")
        return EXIT_FATAL

    if args.src is not None:
        config.src = args.src
    if args.out is not None:
        config.out = args.out
    set_log_file(args.log_file or config.log_file)

    try:
        compiler = SiteCompiler(config.src, config.out, config)
    except FatalBuildError as e:
        log(str(e), "Error")
        return EXIT_FATAL

    compiler.clean_output_dir()
    ok = compiler.build_once()
    if not args.watch:
        return EXIT_OK if ok else EXIT_PAGES_FAILED

    watch(compiler)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
