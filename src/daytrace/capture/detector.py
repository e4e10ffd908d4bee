"""Change detection: decide which frames to keep and when to extract text.

Each display keeps one fingerprint (the last *kept* frame) and the instant of
its last text extraction. A frame is compared against that fingerprint:

  distance <= similarity_threshold          discard, state unchanged
  distance >  major_change_threshold        keep, force extraction
  otherwise                                 keep, extract if the interval elapsed

Frames arriving faster than ``min_frame_interval`` per display are dropped
before fingerprinting.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime

import numpy as np
from PIL import Image

from daytrace.capture.frames import Frame

logger = logging.getLogger(__name__)

FINGERPRINT_SIZE = 16


@dataclass(frozen=True)
class Decision:
    keep: bool
    force_extract: bool = False
    distance: float | None = None
    throttled: bool = False


def _rgb2gray(img: np.ndarray) -> np.ndarray:
    return 0.2989 * img[..., 0] + 0.5870 * img[..., 1] + 0.1140 * img[..., 2]


def compute_fingerprint(pixels: np.ndarray, size: int = FINGERPRINT_SIZE) -> np.ndarray:
    """Return a ``(size, size)`` grayscale thumbnail of *pixels* scaled to [0, 1].

    Args:
        pixels: RGB image as a NumPy array (or a single-channel array).
        size: Edge length of the thumbnail.
    """
    gray = _rgb2gray(pixels.astype(np.float32)) if pixels.ndim == 3 else pixels.astype(np.float32)
    thumb = Image.fromarray(np.ascontiguousarray(gray, dtype=np.float32)).resize(
        (size, size), Image.Resampling.BOX
    )
    return np.clip(np.asarray(thumb, dtype=np.float32) / 255.0, 0.0, 1.0)


def fingerprint_distance(a: np.ndarray, b: np.ndarray) -> float:
    """Mean absolute difference between two fingerprints, in [0, 1].

    Symmetric; identical fingerprints give exactly 0. Fingerprints of
    different shapes are maximally distant.
    """
    if a.shape != b.shape:
        return 1.0
    return float(np.mean(np.abs(a - b)))


@dataclass
class _DisplayState:
    lock: threading.Lock
    fingerprint: np.ndarray | None = None
    last_evaluated: datetime | None = None
    last_extraction: datetime | None = None


class ChangeDetector:
    """Per-display keep/extract decisions for incoming frames.

    State for each display is private to that display and guarded by its own
    lock, so concurrent capture loops never contend and each display's
    updates are applied in call order.
    """

    def __init__(
        self,
        similarity_threshold: float = 0.1,
        major_change_threshold: float = 0.5,
        extraction_interval: float = 10.0,
        min_frame_interval: float = 1.0,
    ) -> None:
        if major_change_threshold < similarity_threshold:
            raise ValueError("major_change_threshold must be >= similarity_threshold")
        self.similarity_threshold = similarity_threshold
        self.major_change_threshold = major_change_threshold
        self.extraction_interval = extraction_interval
        self.min_frame_interval = min_frame_interval
        self._states: dict[int, _DisplayState] = {}
        self._states_lock = threading.Lock()

    def _state(self, display_id: int) -> _DisplayState:
        with self._states_lock:
            state = self._states.get(display_id)
            if state is None:
                state = _DisplayState(lock=threading.Lock())
                self._states[display_id] = state
            return state

    def observe(self, frame: Frame, display_id: int | None = None) -> Decision:
        """Decide whether *frame* is kept and whether its text is extracted.

        Args:
            frame: The captured frame.
            display_id: Display the frame came from (defaults to ``frame.display_id``).

        Returns:
            A Decision; ``throttled`` is set when the frame was dropped by the
            per-display rate limit.
        """
        display = frame.display_id if display_id is None else display_id
        now = frame.captured_at
        state = self._state(display)

        with state.lock:
            if state.last_evaluated is not None:
                elapsed = (now - state.last_evaluated).total_seconds()
                if elapsed < self.min_frame_interval:
                    return Decision(keep=False, throttled=True)
            state.last_evaluated = now

            fingerprint = compute_fingerprint(frame.pixels)

            if state.fingerprint is None:
                state.fingerprint = fingerprint
                state.last_extraction = now
                logger.debug("Display %d: first frame kept", display)
                return Decision(keep=True, force_extract=True)

            distance = fingerprint_distance(fingerprint, state.fingerprint)
            if distance <= self.similarity_threshold:
                return Decision(keep=False, distance=distance)

            if distance > self.major_change_threshold:
                force_extract = True
            elif state.last_extraction is None:
                force_extract = True
            else:
                since = (now - state.last_extraction).total_seconds()
                force_extract = since >= self.extraction_interval

            state.fingerprint = fingerprint
            if force_extract:
                state.last_extraction = now
            logger.debug(
                "Display %d changed (distance %.3f, extract=%s)", display, distance, force_extract
            )
            return Decision(keep=True, force_extract=force_extract, distance=distance)

    def reset(self, display_id: int | None = None) -> None:
        """Forget the state of *display_id*, or of every display when None."""
        with self._states_lock:
            if display_id is None:
                self._states.clear()
            else:
                self._states.pop(display_id, None)
