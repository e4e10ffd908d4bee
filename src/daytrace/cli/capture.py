"""daytrace capture — run the per-display capture loops until interrupted.

Usage:
  daytrace capture
  daytrace capture --config ~/work --debug
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from daytrace.app import build_capture_service, build_pipeline, build_retention, open_stores
from daytrace.capture.ocr import DoctrTextDetector
from daytrace.cli.common import load_cfg
from daytrace.cli.errors import err_capture_deps, err_no_displays
from daytrace.logging_config import configure_logging

console = Console()


def capture_cmd(
    config_dir: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Directory containing daytrace.yaml."),
    ] = None,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Verbose logging."),
    ] = False,
    skip_cleanup: Annotated[
        bool,
        typer.Option("--no-cleanup", help="Skip the retention cleanup at startup."),
    ] = False,
) -> None:
    """Capture screens, redact, extract text and index until Ctrl-C."""
    logger = configure_logging(debug=debug, component="daytrace.capture")
    cfg = load_cfg(config_dir)
    stores = open_stores(cfg)

    text_detector = DoctrTextDetector()
    try:
        text_detector.load()
    except Exception as exc:
        console.print(err_capture_deps(exc))
        raise typer.Exit(1)

    if not skip_cleanup:
        build_retention(cfg, stores).cleanup()

    pipeline = build_pipeline(cfg, stores, text_detector=text_detector)
    service = build_capture_service(cfg, pipeline)

    displays = service.start()
    if not displays:
        pipeline.shutdown(wait=False)
        console.print(err_no_displays())
        raise typer.Exit(1)

    console.print(
        f"[green]✓[/] Capturing {len(displays)} display(s) into [bold]{cfg.storage.root}[/]. "
        "Press Ctrl-C to stop."
    )
    try:
        while True:
            time.sleep(1.0)
    except KeyboardInterrupt:
        console.print("\n  [dim]Stopping…[/]")
    finally:
        service.stop()

    c = pipeline.counters
    logger.info(
        "Capture finished: %d frame(s) seen, %d kept, %d stored, %d blocked, %d failed",
        c.seen,
        c.kept,
        c.stored,
        c.blocked,
        c.failed,
    )
    console.print(f"[green]✓[/] Stored {c.stored} snapshot(s).")
