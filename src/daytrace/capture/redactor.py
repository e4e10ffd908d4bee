"""Privacy redaction: black out sensitive on-screen text before persistence.

Redaction is best-effort and pattern-based. It fails open: if text detection
errors, the frame continues unredacted and the outcome is marked degraded, so
capture never stops because the detector is unavailable.
"""

from __future__ import annotations

import logging
import math
import re
import threading
from collections.abc import Iterable

import numpy as np

from daytrace.capture.ocr import Box, TextDetector, TextObservation
from daytrace.outcome import Outcome

logger = logging.getLogger(__name__)

SENSITIVE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b\d{4}[ -]?\d{4}[ -]?\d{4}[ -]?\d{4}\b"),  # credit card grouping
    re.compile(r"\bTR\d{2} ?\d{4} ?\d{4} ?\d{4} ?\d{4} ?\d{4} ?\d{2}\b"),  # TR IBAN
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"parola", re.IGNORECASE),
    re.compile(r"şifre", re.IGNORECASE),
    re.compile(r"api key", re.IGNORECASE),
    re.compile(r"bearer", re.IGNORECASE),
    re.compile(r"secret", re.IGNORECASE),
    re.compile(r"private key", re.IGNORECASE),
)

# Only scrubbed from text; e-mail addresses are not blacked out on screen.
EMAIL_PATTERN = re.compile(r"[A-Z0-9a-z._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,64}")

REDACTED = "[REDACTED]"


def contains_pii(text: str, patterns: Iterable[re.Pattern[str]] = SENSITIVE_PATTERNS) -> bool:
    """Return True if *text* matches any sensitive pattern."""
    return any(p.search(text) for p in patterns)


def scrub(text: str, patterns: Iterable[re.Pattern[str]] = SENSITIVE_PATTERNS) -> str:
    """Replace every sensitive match (and e-mail address) in *text* with ``[REDACTED]``."""
    for pattern in (*patterns, EMAIL_PATTERN):
        text = pattern.sub(REDACTED, text)
    return text


def to_pixel_rect(box: Box, width: int, height: int, margin: int) -> tuple[int, int, int, int]:
    """Convert a normalized box to an inflated, clamped pixel rectangle.

    Returns:
        ``(left, top, right, bottom)`` with exclusive right/bottom edges.
    """
    x0, y0, x1, y1 = box
    left = max(0, math.floor(min(x0, x1) * width) - margin)
    top = max(0, math.floor(min(y0, y1) * height) - margin)
    right = min(width, math.ceil(max(x0, x1) * width) + margin)
    bottom = min(height, math.ceil(max(y0, y1) * height) + margin)
    return left, top, right, bottom


class PrivacyRedactor:
    """Paints opaque black over detected text that matches a sensitive pattern.

    Args:
        detector: Text detector returning line observations with normalized boxes.
        patterns: Compiled patterns tested against each observation's text.
        margin: Pixels added on every side of a matched box.
    """

    def __init__(
        self,
        detector: TextDetector,
        patterns: Iterable[re.Pattern[str]] = SENSITIVE_PATTERNS,
        margin: int = 4,
    ) -> None:
        self._detector = detector
        self._patterns = tuple(patterns)
        self.margin = margin

    def find_sensitive(self, observations: Iterable[TextObservation]) -> list[TextObservation]:
        return [o for o in observations if contains_pii(o.text, self._patterns)]

    def redact(self, image: np.ndarray) -> Outcome[np.ndarray]:
        """Return *image* with sensitive regions blacked out.

        The input array is never modified. When nothing matches, the same
        array object is returned. On any failure the original image comes
        back in a degraded outcome.
        """
        try:
            matches = self.find_sensitive(self._detector.detect(image))
            if not matches:
                return Outcome.ok(image)

            height, width = image.shape[:2]
            redacted = image.copy()
            for observation in matches:
                left, top, right, bottom = to_pixel_rect(observation.box, width, height, self.margin)
                redacted[top:bottom, left:right] = 0
            logger.debug("Redacted %d region(s)", len(matches))
            return Outcome.ok(redacted)
        except Exception as exc:
            logger.warning("Redaction failed, keeping frame unredacted: %s", exc)
            return Outcome.degraded(image, exc)


class AppBlocklist:
    """Applications that are never captured. Matching is case-insensitive."""

    def __init__(self, apps: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._apps: set[str] = set()
        for app in apps:
            self.add(app)

    def __contains__(self, app_name: object) -> bool:
        if not isinstance(app_name, str):
            return False
        with self._lock:
            return app_name.strip().casefold() in self._apps

    def add(self, app_name: str) -> None:
        name = app_name.strip().casefold()
        if name:
            with self._lock:
                self._apps.add(name)

    def remove(self, app_name: str) -> None:
        with self._lock:
            self._apps.discard(app_name.strip().casefold())
