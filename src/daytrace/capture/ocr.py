"""Text detection and extraction over captured frames.

The doctr predictor is heavy to load, so it is created on first use and
shared by every caller of the same detector instance.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from daytrace.outcome import Outcome

logger = logging.getLogger(__name__)

# (x0, y0, x1, y1), normalized to [0, 1], origin top-left.
Box = tuple[float, float, float, float]


@dataclass(frozen=True)
class TextObservation:
    text: str
    box: Box


class TextDetector(Protocol):
    def detect(self, image: np.ndarray) -> list[TextObservation]: ...


class DoctrTextDetector:
    """Line-level text detection with ``python-doctr``.

    Args:
        det_arch: doctr detection architecture.
        reco_arch: doctr recognition architecture.
    """

    def __init__(
        self,
        det_arch: str = "db_mobilenet_v3_large",
        reco_arch: str = "crnn_mobilenet_v3_large",
    ) -> None:
        self.det_arch = det_arch
        self.reco_arch = reco_arch
        self._predictor = None
        self._lock = threading.Lock()

    def _get_predictor(self):
        with self._lock:
            if self._predictor is None:
                from doctr.models import ocr_predictor

                logger.info("Loading doctr predictor (%s / %s)", self.det_arch, self.reco_arch)
                self._predictor = ocr_predictor(
                    pretrained=True,
                    det_arch=self.det_arch,
                    reco_arch=self.reco_arch,
                )
            return self._predictor

    def load(self) -> None:
        """Load the predictor now instead of on the first frame."""
        self._get_predictor()

    def detect(self, image: np.ndarray) -> list[TextObservation]:
        """Return one observation per detected text line."""
        result = self._get_predictor()([image])
        observations: list[TextObservation] = []
        for page in result.pages:
            for block in page.blocks:
                for line in block.lines:
                    text = " ".join(word.value for word in line.words).strip()
                    if not text:
                        continue
                    (x0, y0), (x1, y1) = line.geometry
                    observations.append(
                        TextObservation(text=text, box=(float(x0), float(y0), float(x1), float(y1)))
                    )
        return observations


class TextExtractor:
    """Produces the text content of a (redacted) frame.

    No retries: a detector failure yields a degraded, empty result.
    """

    def __init__(self, detector: TextDetector) -> None:
        self._detector = detector

    def extract(self, image: np.ndarray) -> Outcome[str]:
        try:
            observations = self._detector.detect(image)
        except Exception as exc:
            logger.warning("Text extraction failed: %s", exc)
            return Outcome.degraded("", exc)

        text = "\n".join(o.text for o in observations).strip()
        if not text:
            return Outcome.absent("")
        return Outcome.ok(text)
