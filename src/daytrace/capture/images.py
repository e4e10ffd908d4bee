"""Persist redacted frames to disk, one folder per day."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


class ImageStore:
    """Writes frames as ``<root>/YYYY-MM-DD/HH-MM-SS-ffffff-dN.<ext>``.

    Args:
        root: Base directory for stored frames.
        image_format: Pillow format name (``webp``, ``png``, ``jpeg``).
        quality: Lossy quality passed to Pillow.
    """

    def __init__(self, root: Path, image_format: str = "webp", quality: int = 70) -> None:
        self.root = Path(root)
        self.image_format = image_format.lower()
        self.quality = quality

    @property
    def extension(self) -> str:
        return "jpg" if self.image_format == "jpeg" else self.image_format

    def path_for(self, captured_at: datetime, display_id: int) -> Path:
        folder = self.root / captured_at.strftime("%Y-%m-%d")
        name = f"{captured_at.strftime('%H-%M-%S-%f')}-d{display_id}.{self.extension}"
        return folder / name

    def save(self, pixels: np.ndarray, captured_at: datetime, display_id: int = 0) -> Path:
        """Write *pixels* to disk and return the file path.

        Raises:
            OSError: If the directory or file cannot be written.
        """
        target = self.path_for(captured_at, display_id)
        target.parent.mkdir(parents=True, exist_ok=True)
        image = Image.fromarray(pixels)
        if self.image_format == "png":
            image.save(target, format="png")
        else:
            image.save(target, format=self.image_format, quality=self.quality)
        logger.debug("Saved frame %s", target.name)
        return target

    def day_folders(self) -> list[Path]:
        if not self.root.exists():
            return []
        return sorted(p for p in self.root.iterdir() if p.is_dir())
