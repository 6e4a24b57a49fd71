"""Tests for heading log and capture directory validation."""

import json
import math
from pathlib import Path

import pytest

from conftest import write_frames


def create_heading_log(output_dir: Path, num_samples: int = 20, **extra) -> Path:
    """Write a heading log turning 10° per sample."""
    log = {
        "samples": [
            {"timestamp": 5.0 + i * 0.1, "heading": i * 10.0}
            for i in range(num_samples)
        ],
        **extra,
    }
    log_path = output_dir / "heading_log.json"
    with open(log_path, "w") as f:
        json.dump(log, f)
    return log_path


class TestHeadingLog:
    """Tests for heading log validation."""

    def test_valid_log(self, tmp_path):
        from utils.validation import validate_heading_log

        is_valid, log, errors = validate_heading_log(create_heading_log(tmp_path))

        assert is_valid
        assert errors == []
        assert len(log.samples) == 20
        assert log.first_heading == 0.0

    def test_missing_log(self, tmp_path):
        from utils.validation import validate_heading_log

        is_valid, log, errors = validate_heading_log(tmp_path / "nope.json")

        assert not is_valid
        assert log is None
        assert "does not exist" in errors[0]

    def test_invalid_json(self, tmp_path):
        from utils.validation import validate_heading_log

        path = tmp_path / "heading_log.json"
        path.write_text("{not json")

        is_valid, _, errors = validate_heading_log(path)

        assert not is_valid
        assert "Invalid JSON" in errors[0]

    def test_too_few_samples(self, tmp_path):
        from utils.validation import validate_heading_log

        is_valid, _, errors = validate_heading_log(create_heading_log(tmp_path, num_samples=1))

        assert not is_valid
        assert "At least 2 heading samples" in str(errors)

    def test_non_monotonic_timestamps(self, tmp_path):
        from utils.validation import HeadingLog

        with pytest.raises(ValueError, match="Non-monotonic"):
            HeadingLog(samples=[
                {"timestamp": 1.0, "heading": 0.0},
                {"timestamp": 0.5, "heading": 10.0},
            ])

    def test_yaw_converted_to_heading(self):
        from utils.validation import HeadingSample

        sample = HeadingSample(timestamp=0.0, yaw=-math.pi / 2)

        assert sample.heading == pytest.approx(270.0)

    def test_heading_normalized(self):
        from utils.validation import HeadingSample

        assert HeadingSample(timestamp=0.0, heading=-30.0).heading == pytest.approx(330.0)

    def test_sample_needs_heading_or_yaw(self):
        from utils.validation import HeadingSample

        with pytest.raises(ValueError):
            HeadingSample(timestamp=0.0)

    def test_start_heading_overrides_first_sample(self, tmp_path):
        from utils.validation import validate_heading_log

        _, log, _ = validate_heading_log(create_heading_log(tmp_path, start_heading=365.0))

        assert log.first_heading == pytest.approx(5.0)


class TestCaptureDir:
    """Tests for exported frame directory validation."""

    def test_valid_dir(self, tmp_path):
        from utils.validation import validate_capture_dir

        write_frames(tmp_path, 10)

        is_valid, info, errors = validate_capture_dir(tmp_path, min_frames=8)

        assert is_valid, errors
        assert info["frame_count"] == 10
        assert [p.name for p in info["frames"]][:3] == [
            "capture_00.jpg", "capture_01.jpg", "capture_02.jpg",
        ]

    def test_sorted_numerically(self, tmp_path):
        from utils.validation import list_capture_files

        write_frames(tmp_path, 3)
        (tmp_path / "capture_100.jpg").write_bytes(b"x")
        (tmp_path / "notes.txt").write_text("ignored")

        names = [p.name for p in list_capture_files(tmp_path)]

        assert names == ["capture_00.jpg", "capture_01.jpg", "capture_02.jpg", "capture_100.jpg"]

    def test_missing_dir(self, tmp_path):
        from utils.validation import validate_capture_dir

        is_valid, _, errors = validate_capture_dir(tmp_path / "missing")

        assert not is_valid
        assert "does not exist" in errors[0]

    def test_too_few_frames(self, tmp_path):
        from utils.validation import validate_capture_dir

        write_frames(tmp_path, 5)

        is_valid, _, errors = validate_capture_dir(tmp_path, min_frames=8)

        assert not is_valid
        assert "At least 8 frames" in str(errors)

    def test_gap_in_indices(self, tmp_path):
        from utils.validation import validate_capture_dir

        paths = write_frames(tmp_path, 9)
        paths[3].unlink()

        is_valid, _, errors = validate_capture_dir(tmp_path, min_frames=8)

        assert not is_valid
        assert "not contiguous" in str(errors)

    def test_empty_file(self, tmp_path):
        from utils.validation import validate_capture_dir

        paths = write_frames(tmp_path, 8)
        paths[0].write_bytes(b"")

        is_valid, _, errors = validate_capture_dir(tmp_path, min_frames=8)

        assert not is_valid
        assert "Empty frame file: capture_00.jpg" in errors


class TestConfig:
    """Tests for environment-driven configuration."""

    def test_defaults(self, monkeypatch):
        from utils.config import DEFAULT_BASE_URL, GenerationConfig

        for var in ("ORBIT_API_KEY", "ORBIT_API_BASE_URL", "ORBIT_POLL_INTERVAL",
                    "ORBIT_POLL_TIMEOUT", "ORBIT_REQUEST_TIMEOUT", "ORBIT_PROMPT"):
            monkeypatch.delenv(var, raising=False)

        config = GenerationConfig.from_env()

        assert config.api_key == ""
        assert config.base_url == DEFAULT_BASE_URL
        assert config.polling_interval == 5.0
        assert config.polling_timeout == 600.0
        assert config.max_dimension == 1024
        assert config.target_count == 18

    def test_reads_environment(self, monkeypatch):
        from utils.config import GenerationConfig

        monkeypatch.setenv("ORBIT_API_KEY", "  secret  ")
        monkeypatch.setenv("ORBIT_API_BASE_URL", "https://example.test/v1/")
        monkeypatch.setenv("ORBIT_POLL_TIMEOUT", "30")

        config = GenerationConfig.from_env()

        assert config.api_key == "secret"
        assert config.base_url == "https://example.test/v1"
        assert config.polling_timeout == 30.0

    def test_overrides_win(self, monkeypatch):
        from utils.config import GenerationConfig

        monkeypatch.setenv("ORBIT_POLL_INTERVAL", "9")

        config = GenerationConfig.from_env(polling_interval=1.0, prompt=None)

        assert config.polling_interval == 1.0
        assert config.prompt is not None

    def test_bad_number(self, monkeypatch):
        from utils.config import GenerationConfig

        monkeypatch.setenv("ORBIT_POLL_TIMEOUT", "soon")

        with pytest.raises(ValueError, match="ORBIT_POLL_TIMEOUT"):
            GenerationConfig.from_env()

    def test_unknown_override(self):
        from utils.config import GenerationConfig

        with pytest.raises(TypeError):
            GenerationConfig.from_env(colour="blue")
