"""Tests for the mss frame source."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from daytrace.capture.frames import Frame, MssFrameSource


def _mss_with(monitors, shot=None):
    sct = MagicMock()
    sct.monitors = monitors
    sct.grab.return_value = shot
    factory = MagicMock()
    factory.return_value.__enter__.return_value = sct
    return factory, sct


ALL = {"left": 0, "top": 0, "width": 200, "height": 100}
LEFT = {"left": 0, "top": 0, "width": 100, "height": 100}
RIGHT = {"left": 100, "top": 0, "width": 100, "height": 100}


def test_displays_skip_virtual_screen():
    factory, _ = _mss_with([ALL, LEFT, RIGHT])
    with patch("daytrace.capture.frames.mss.mss", factory):
        assert MssFrameSource().displays() == [0, 1]
        assert MssFrameSource(primary_only=True).displays() == [0]


def test_displays_none_connected():
    factory, _ = _mss_with([ALL])
    with patch("daytrace.capture.frames.mss.mss", factory):
        assert MssFrameSource().displays() == []


def test_grab_converts_bgra_to_rgb():
    bgra = np.zeros((2, 3, 4), dtype=np.uint8)
    bgra[..., 0] = 10  # B
    bgra[..., 1] = 20  # G
    bgra[..., 2] = 30  # R
    bgra[..., 3] = 255
    factory, sct = _mss_with([ALL, LEFT, RIGHT], shot=bgra)

    with patch("daytrace.capture.frames.mss.mss", factory):
        frame = MssFrameSource().grab(1)

    sct.grab.assert_called_once_with(RIGHT)
    assert frame.display_id == 1
    assert frame.pixels.shape == (2, 3, 3)
    assert tuple(frame.pixels[0, 0]) == (30, 20, 10)
    assert frame.size == (3, 2)


def test_grab_unknown_display():
    factory, _ = _mss_with([ALL, LEFT])
    with patch("daytrace.capture.frames.mss.mss", factory):
        with pytest.raises(IndexError):
            MssFrameSource().grab(3)


def test_frame_defaults_capture_time():
    assert Frame(pixels=np.zeros((1, 1, 3), dtype=np.uint8)).captured_at is not None
