"""Tests for capture sessions and frame export."""

import numpy as np
import pytest
from PIL import Image

from capture.session import CaptureSession, export_frames


def solid_frame(value: int = 128) -> np.ndarray:
    return np.full((24, 32, 3), value, dtype=np.uint8)


class TestCaptureSession:
    """Tests for observe/stop/finalize."""

    def test_provider_only_called_on_capture(self):
        session = CaptureSession(target_count=18)
        session.start(0.0)
        calls = []

        def provider():
            calls.append(1)
            return solid_frame()

        session.observe(0.0, provider)
        session.observe(10.0, provider)
        session.observe(30.0, provider)

        assert len(calls) == 1
        assert session.captured_count == 1

    def test_captured_frame_carries_target_and_heading(self):
        session = CaptureSession(target_count=18)
        session.start(0.0)

        frame = session.observe(21.5, solid_frame)

        assert frame.target_index == 1
        assert frame.heading == pytest.approx(21.5)
        assert session.frames == [frame]

    def test_provider_returning_none_leaves_target_open(self):
        session = CaptureSession(target_count=18)
        session.start(0.0)

        assert session.observe(0.0, lambda: None) is None
        assert session.captured_count == 0

        frame = session.observe(1.0, solid_frame)
        assert frame.target_index == 0

    def test_stop_ignores_observations(self):
        session = CaptureSession(target_count=18)
        session.start(0.0)
        session.stop()

        assert session.observe(0.0, solid_frame) is None
        assert session.captured_count == 0

    def test_auto_stops_when_complete(self):
        session = CaptureSession(target_count=2)
        session.start(0.0)
        session.observe(0.0, solid_frame)
        session.observe(180.0, solid_frame)

        assert session.is_complete
        assert not session.is_active

    def test_finalize_orders_by_target_index(self):
        """Frames captured out of order are exported in target order."""
        session = CaptureSession(target_count=18)
        session.start(0.0)
        for heading in (100.0, 0.0, 340.0, 40.0):
            session.observe(heading, solid_frame)

        exported = session.finalize()

        assert [e.frame.target_index for e in exported] == [0, 2, 5, 17]
        assert [e.export_index for e in exported] == [0, 1, 2, 3]
        assert [e.file_name for e in exported] == [
            "capture_00.jpg", "capture_01.jpg", "capture_02.jpg", "capture_03.jpg",
        ]

    def test_can_finish_after_minimum(self):
        session = CaptureSession(target_count=18, min_frames=8)
        session.start(0.0)
        for i in range(7):
            session.observe(i * 20.0, solid_frame)

        assert not session.can_finish
        assert session.remaining_to_finish == 1

        session.observe(140.0, solid_frame)
        assert session.can_finish
        assert session.remaining_to_finish == 0

    def test_minimum_capped_by_target_count(self):
        session = CaptureSession(target_count=4, min_frames=8)
        session.start(0.0)
        for heading in (0.0, 90.0, 180.0, 270.0):
            session.observe(heading, solid_frame)

        assert session.can_finish

    def test_start_resets(self):
        session = CaptureSession(target_count=18)
        session.start(0.0)
        session.observe(0.0, solid_frame)

        session.start(45.0, target_count=12)

        assert session.captured_count == 0
        assert session.frames == []
        assert session.is_active
        assert session.state.target_count == 12

    def test_guidance(self):
        session = CaptureSession(target_count=4)
        session.start(0.0)
        session.observe(0.0, solid_frame)
        session.observe(95.0, solid_frame)

        index, angle = session.guidance()

        # 90° (index 1) fired; 180° is nearest to 95°
        assert index == 2
        assert angle == pytest.approx(180.0)


class TestExportFrames:
    """Tests for writing finalized frames to disk."""

    def test_writes_jpegs(self, tmp_path):
        session = CaptureSession(target_count=4)
        session.start(0.0)
        session.observe(90.0, lambda: solid_frame(10))
        session.observe(0.0, lambda: Image.new("RGB", (32, 24), (200, 0, 0)))

        paths = export_frames(session.finalize(), tmp_path / "out")

        assert [p.name for p in paths] == ["capture_00.jpg", "capture_01.jpg"]
        with Image.open(paths[0]) as img:
            assert img.size == (32, 24)
            assert img.getpixel((16, 12))[0] > 150

    def test_skips_unconvertible_payloads(self, tmp_path):
        session = CaptureSession(target_count=4)
        session.start(0.0)
        session.observe(0.0, lambda: b"not an image")
        session.observe(90.0, solid_frame)

        paths = export_frames(session.finalize(), tmp_path)

        assert [p.name for p in paths] == ["capture_01.jpg"]
