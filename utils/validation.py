"""Validation utilities for heading logs and exported capture directories."""

import json
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from .angles import heading_from_yaw, normalize_heading


CAPTURE_FILE_PATTERN = re.compile(r"^capture_(\d{2,})\.jpe?g$", re.IGNORECASE)


# Pydantic models for heading log validation


class HeadingSample(BaseModel):
    timestamp: float = Field(..., ge=0)
    heading: Optional[float] = None
    yaw: Optional[float] = None

    @model_validator(mode="after")
    def resolve_heading(self):
        if self.heading is None and self.yaw is None:
            raise ValueError("Sample needs either 'heading' (degrees) or 'yaw' (radians)")
        if self.heading is None:
            self.heading = heading_from_yaw(self.yaw)
        else:
            self.heading = normalize_heading(self.heading)
        return self


class HeadingLog(BaseModel):
    """Heading samples recorded alongside a capture video."""

    video_path: Optional[str] = None
    start_heading: Optional[float] = None
    target_count: Optional[int] = Field(default=None, ge=1)
    samples: List[HeadingSample]

    @field_validator("samples")
    @classmethod
    def validate_samples(cls, v):
        if len(v) < 2:
            raise ValueError(f"At least 2 heading samples required, got {len(v)}")
        timestamps = [s.timestamp for s in v]
        for i in range(1, len(timestamps)):
            if timestamps[i] < timestamps[i - 1]:
                raise ValueError(f"Non-monotonic timestamp at sample {i}")
        return v

    @property
    def first_heading(self) -> float:
        if self.start_heading is not None:
            return normalize_heading(self.start_heading)
        return self.samples[0].heading


def validate_heading_log(log_path: Path) -> Tuple[bool, Optional[HeadingLog], List[str]]:
    """
    Validate a heading log JSON file.

    Returns:
        Tuple of (is_valid, parsed_log, list_of_errors)
    """
    if not log_path.exists():
        return False, None, ["Heading log does not exist"]

    try:
        with open(log_path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        return False, None, [f"Invalid JSON: {e}"]

    try:
        log = HeadingLog(**data)
        return True, log, []
    except Exception as e:
        return False, None, [str(e)]


def list_capture_files(frames_dir: Path) -> List[Path]:
    """capture_XX.jpg files of a directory, ordered by their export index."""
    matched = []
    for path in frames_dir.iterdir():
        m = CAPTURE_FILE_PATTERN.match(path.name)
        if m and path.is_file():
            matched.append((int(m.group(1)), path))
    return [p for _, p in sorted(matched)]


def validate_capture_dir(
    frames_dir: Path,
    min_frames: int = 8
) -> Tuple[bool, Dict, List[str]]:
    """
    Validate an exported capture directory before generation.

    Checks:
    - Directory exists and holds capture_XX.jpg files
    - At least min_frames frames
    - Export indices are contiguous from 00

    Returns:
        Tuple of (is_valid, info, list_of_errors)
    """
    errors = []
    info = {"frame_count": 0, "frames": []}

    if not frames_dir.exists() or not frames_dir.is_dir():
        return False, info, [f"Capture directory does not exist: {frames_dir}"]

    frames = list_capture_files(frames_dir)
    info["frame_count"] = len(frames)
    info["frames"] = frames

    if not frames:
        return False, info, ["No capture_XX.jpg files found"]

    if len(frames) < min_frames:
        errors.append(f"At least {min_frames} frames required, got {len(frames)}")

    indices = [int(CAPTURE_FILE_PATTERN.match(p.name).group(1)) for p in frames]
    if indices != list(range(len(indices))):
        errors.append(f"Capture indices are not contiguous: {indices}")

    for path in frames:
        if path.stat().st_size == 0:
            errors.append(f"Empty frame file: {path.name}")

    return len(errors) == 0, info, errors
