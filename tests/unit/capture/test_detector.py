"""Tests for fingerprinting and the change detector."""

from __future__ import annotations

from datetime import datetime, timedelta

import numpy as np
import pytest

from daytrace.capture.detector import ChangeDetector, compute_fingerprint, fingerprint_distance
from daytrace.capture.frames import Frame

T0 = datetime(2024, 5, 17, 9, 0, 0)


def _blank(size: int = 64) -> np.ndarray:
    return np.zeros((size, size, 3), dtype=np.uint8)


def _white_rows(rows: int, size: int = 64) -> np.ndarray:
    """Black image whose top *rows* rows are white."""
    img = _blank(size)
    img[:rows] = 255
    return img


def _frame(pixels: np.ndarray, seconds: float = 0.0, display: int = 0) -> Frame:
    return Frame(pixels=pixels, display_id=display, captured_at=T0 + timedelta(seconds=seconds))


# ------------------------------------------------------------------
# Fingerprint
# ------------------------------------------------------------------


def test_fingerprint_shape_and_range():
    fp = compute_fingerprint(_white_rows(16))
    assert fp.shape == (16, 16)
    assert fp.min() >= 0.0
    assert fp.max() <= 1.0


def test_identical_frames_distance_zero():
    a = compute_fingerprint(_white_rows(20))
    b = compute_fingerprint(_white_rows(20).copy())
    assert fingerprint_distance(a, b) == 0.0


def test_distance_is_symmetric():
    a = compute_fingerprint(_blank())
    b = compute_fingerprint(_white_rows(16))
    assert fingerprint_distance(a, b) == fingerprint_distance(b, a)
    assert fingerprint_distance(a, b) == pytest.approx(0.25, abs=1e-3)


def test_black_to_white_is_maximal():
    a = compute_fingerprint(_blank())
    b = compute_fingerprint(np.full((64, 64, 3), 255, dtype=np.uint8))
    assert fingerprint_distance(a, b) == pytest.approx(1.0, abs=1e-3)


def test_shape_mismatch_is_maximal():
    assert fingerprint_distance(np.zeros((16, 16)), np.zeros((8, 8))) == 1.0


def test_fingerprint_independent_of_resolution():
    small = compute_fingerprint(_white_rows(16, size=64))
    large = compute_fingerprint(_white_rows(32, size=128))
    assert fingerprint_distance(small, large) == pytest.approx(0.0, abs=1e-3)


# ------------------------------------------------------------------
# Decisions
# ------------------------------------------------------------------


def test_first_frame_kept_and_extracted():
    d = ChangeDetector().observe(_frame(_blank()))
    assert d.keep is True
    assert d.force_extract is True


def test_identical_second_frame_discarded():
    det = ChangeDetector()
    det.observe(_frame(_white_rows(10), 0))
    d = det.observe(_frame(_white_rows(10), 1))
    assert d.keep is False
    assert d.distance == 0.0
    assert d.throttled is False


def test_frames_faster_than_limit_are_throttled():
    det = ChangeDetector(min_frame_interval=1.0)
    det.observe(_frame(_blank(), 0))
    d = det.observe(_frame(np.full((64, 64, 3), 255, dtype=np.uint8), 0.5))
    assert d.keep is False
    assert d.throttled is True


def test_frame_exactly_at_limit_is_evaluated():
    det = ChangeDetector(min_frame_interval=1.0)
    det.observe(_frame(_blank(), 0))
    d = det.observe(_frame(np.full((64, 64, 3), 255, dtype=np.uint8), 1.0))
    assert d.throttled is False
    assert d.keep is True


def test_major_change_forces_extraction():
    det = ChangeDetector()
    det.observe(_frame(_blank(), 0))
    d = det.observe(_frame(np.full((64, 64, 3), 255, dtype=np.uint8), 1))
    assert d.keep is True
    assert d.force_extract is True


def test_moderate_change_extracts_on_interval():
    det = ChangeDetector(extraction_interval=10.0)
    det.observe(_frame(_blank(), 0))

    early = det.observe(_frame(_white_rows(16), 1))
    assert early.keep is True
    assert early.force_extract is False

    late = det.observe(_frame(_white_rows(32), 12))
    assert late.keep is True
    assert late.force_extract is True


def test_discarded_frame_does_not_move_fingerprint():
    det = ChangeDetector(similarity_threshold=0.1)
    det.observe(_frame(_blank(), 0))
    # 4 of 64 rows changed → distance ~0.0625, discarded
    assert det.observe(_frame(_white_rows(4), 1)).keep is False
    # Still compared against the blank frame, not the discarded one
    d = det.observe(_frame(_white_rows(8), 2))
    assert d.distance == pytest.approx(0.125, abs=1e-3)


def test_displays_are_independent():
    det = ChangeDetector()
    det.observe(_frame(_blank(), 0, display=0))
    d = det.observe(_frame(_blank(), 0.1, display=1))
    assert d.keep is True
    assert d.force_extract is True


def test_reset_forgets_display_state():
    det = ChangeDetector()
    det.observe(_frame(_blank(), 0))
    det.reset(0)
    d = det.observe(_frame(_blank(), 0.2))
    assert d.keep is True
    assert d.force_extract is True


def test_invalid_thresholds_rejected():
    with pytest.raises(ValueError):
        ChangeDetector(similarity_threshold=0.5, major_change_threshold=0.2)
