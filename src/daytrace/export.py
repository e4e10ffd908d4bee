"""CSV export of snapshot metadata.

One row per snapshot: capture time (ISO 8601, seconds), app name, window
title and category. Extracted text and image paths are not exported.
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TextIO

from daytrace.db.models import Snapshot

logger = logging.getLogger(__name__)

CSV_HEADER = ("Timestamp", "App Name", "Window Title", "Category")


def write_csv(snapshots: Iterable[Snapshot], out: TextIO) -> int:
    """Write *snapshots* as CSV to *out*. Returns the number of data rows."""
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    rows = 0
    for snap in snapshots:
        writer.writerow(
            (
                snap.captured_at.isoformat(timespec="seconds"),
                snap.app_name,
                snap.window_title,
                snap.category,
            )
        )
        rows += 1
    return rows


def export_csv(snapshots: Iterable[Snapshot], path: Path) -> int:
    """Write *snapshots* to the CSV file at *path*, creating parent folders."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as fh:
        rows = write_csv(snapshots, fh)
    logger.info("Exported %d snapshot(s) to %s", rows, path)
    return rows
