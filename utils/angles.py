"""Heading and azimuth utilities for angle-gated capture."""

import math
from typing import List, Sequence

import numpy as np


FULL_TURN = 360.0


def normalize_heading(heading: float) -> float:
    """Wrap a heading in degrees into [0, 360)."""
    wrapped = math.fmod(heading, FULL_TURN)
    if wrapped < 0:
        wrapped += FULL_TURN
    # fmod(-1e-17, 360) + 360 rounds to exactly 360.0
    if wrapped >= FULL_TURN:
        wrapped = 0.0
    return wrapped


def heading_from_yaw(yaw_radians: float) -> float:
    """
    Convert a device yaw (radians, as reported by the motion sensor) to a
    compass-style heading in degrees.
    """
    return normalize_heading(math.degrees(yaw_radians) + FULL_TURN)


def angle_difference(a: float, b: float) -> float:
    """
    Smallest angular distance between two headings.

    Symmetric in its arguments and always within [0, 180].
    """
    diff = math.fmod(abs(a - b), FULL_TURN)
    return min(diff, FULL_TURN - diff)


def angular_distances(heading: float, targets: Sequence[float]) -> np.ndarray:
    """Vectorized angle_difference from one heading to every target."""
    diff = np.fmod(np.abs(np.asarray(targets, dtype=float) - heading), FULL_TURN)
    return np.minimum(diff, FULL_TURN - diff)


def generate_target_angles(start_heading: float, count: int) -> List[float]:
    """
    Evenly spaced target headings starting at the current heading.

    Returns count angles `(start + i * 360/count) mod 360`.
    """
    if count < 1:
        raise ValueError(f"Target count must be at least 1, got {count}")

    step = FULL_TURN / count
    return [normalize_heading(start_heading + i * step) for i in range(count)]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def azimuth_for_index(index: int, frame_count: int) -> int:
    """Azimuth in whole degrees for the index-th of frame_count evenly spaced views."""
    if frame_count < 1:
        raise ValueError(f"Frame count must be at least 1, got {frame_count}")
    return round_half_up(index * FULL_TURN / frame_count)


def azimuths(frame_count: int) -> List[int]:
    """Azimuths for every position of an evenly spaced turn."""
    return [azimuth_for_index(i, frame_count) for i in range(frame_count)]
