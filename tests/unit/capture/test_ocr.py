"""Tests for text detection and extraction."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import numpy as np

from daytrace.capture.ocr import DoctrTextDetector, TextExtractor, TextObservation
from daytrace.outcome import Status


def _line(words, geometry):
    return SimpleNamespace(words=[SimpleNamespace(value=w) for w in words], geometry=geometry)


def _doctr_result(lines):
    page = SimpleNamespace(blocks=[SimpleNamespace(lines=lines)])
    return SimpleNamespace(pages=[page])


# ------------------------------------------------------------------
# TextExtractor
# ------------------------------------------------------------------


def test_extract_joins_lines(fake_detector, observation):
    detector = fake_detector([observation("def main():"), observation("    return 0")])
    outcome = TextExtractor(detector).extract(np.zeros((8, 8, 3), dtype=np.uint8))
    assert outcome.status is Status.OK
    assert outcome.value == "def main():\n    return 0"


def test_extract_no_text_is_absent(fake_detector):
    outcome = TextExtractor(fake_detector([])).extract(np.zeros((8, 8, 3), dtype=np.uint8))
    assert outcome.status is Status.ABSENT
    assert outcome.value == ""


def test_extract_failure_is_degraded(fake_detector):
    detector = fake_detector(error=RuntimeError("boom"))
    outcome = TextExtractor(detector).extract(np.zeros((8, 8, 3), dtype=np.uint8))
    assert outcome.status is Status.DEGRADED
    assert outcome.value == ""
    assert outcome.error == "boom"


# ------------------------------------------------------------------
# DoctrTextDetector
# ------------------------------------------------------------------


def test_doctr_detector_maps_lines_to_observations():
    detector = DoctrTextDetector()
    predictor = MagicMock(
        return_value=_doctr_result(
            [
                _line(["git", "status"], ((0.1, 0.2), (0.4, 0.25))),
                _line([], ((0.0, 0.0), (0.1, 0.1))),
            ]
        )
    )
    detector._predictor = predictor

    image = np.zeros((10, 10, 3), dtype=np.uint8)
    result = detector.detect(image)

    assert result == [TextObservation("git status", (0.1, 0.2, 0.4, 0.25))]
    predictor.assert_called_once()
    assert predictor.call_args.args[0][0] is image


def test_doctr_detector_loads_lazily(monkeypatch):
    created = []

    def _fake_ocr_predictor(**kwargs):
        created.append(kwargs)
        return MagicMock(return_value=_doctr_result([]))

    import doctr.models

    monkeypatch.setattr(doctr.models, "ocr_predictor", _fake_ocr_predictor)

    detector = DoctrTextDetector(det_arch="db_resnet50", reco_arch="crnn_vgg16_bn")
    assert created == []
    detector.load()
    detector.detect(np.zeros((4, 4, 3), dtype=np.uint8))

    assert len(created) == 1
    assert created[0]["det_arch"] == "db_resnet50"
    assert created[0]["reco_arch"] == "crnn_vgg16_bn"
