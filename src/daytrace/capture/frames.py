"""Screen frames and the mss-backed frame source."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

import mss
import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class Frame:
    """One captured display image. Never persisted directly.

    Attributes:
        pixels: RGB image as a ``(height, width, 3)`` uint8 array.
        display_id: Index of the physical display (0 = primary).
        captured_at: Local capture instant.
    """

    pixels: np.ndarray
    display_id: int = 0
    captured_at: datetime = field(default_factory=datetime.now)

    @property
    def size(self) -> tuple[int, int]:
        """(width, height) in pixels."""
        return self.pixels.shape[1], self.pixels.shape[0]


class FrameSource(Protocol):
    def displays(self) -> list[int]: ...

    def grab(self, display_id: int) -> Frame: ...


class MssFrameSource:
    """Grabs frames from physical monitors with ``mss``.

    ``mss`` handles are not thread-safe, so each call opens its own; one
    capture loop runs per display and calls :meth:`grab` for its display only.
    """

    def __init__(self, primary_only: bool = False) -> None:
        self.primary_only = primary_only

    def displays(self) -> list[int]:
        """Return display ids (0-based) available for capture."""
        with mss.mss() as sct:
            # sct.monitors[0] is the combined virtual screen; physical
            # monitors start at index 1.
            count = len(sct.monitors) - 1
        if count <= 0:
            return []
        return [0] if self.primary_only else list(range(count))

    def grab(self, display_id: int) -> Frame:
        """Capture *display_id* and return it as an RGB frame."""
        with mss.mss() as sct:
            index = display_id + 1
            if index >= len(sct.monitors):
                raise IndexError(f"display {display_id} is not connected")
            shot = sct.grab(sct.monitors[index])
            # BGRA → RGB
            pixels = np.array(shot)[:, :, [2, 1, 0]]
        return Frame(pixels=np.ascontiguousarray(pixels), display_id=display_id)
