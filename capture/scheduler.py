"""
Angle-Gated Capture Scheduler

Decides, frame by frame, whether the current device heading satisfies one of
the N evenly spaced target angles of a 360 degree turn.

The scheduler is a pure state machine: `observe_heading` takes the current
`SchedulerState` and a heading and returns the next state plus a
`CaptureDecision`. `AngleScheduler` is a small convenience wrapper that keeps
the latest state for callers that prefer an object.

Nearest-uncaptured recomputation scans every target on each observation,
which is O(N) per frame. N is around 18-20, so this is not optimized.
"""

from dataclasses import dataclass, field, replace
from typing import FrozenSet, Optional, Tuple

import numpy as np

from utils.angles import angular_distances, generate_target_angles, normalize_heading


DEFAULT_TARGET_COUNT = 18
DEFAULT_TOLERANCE = 8.0  # degrees


@dataclass(frozen=True)
class CaptureDecision:
    """Outcome of a single observation."""
    target_index: Optional[int] = None
    complete: bool = False

    @property
    def should_capture(self) -> bool:
        return self.target_index is not None


NO_CAPTURE = CaptureDecision()


@dataclass(frozen=True)
class SchedulerState:
    """Immutable snapshot of a capture run."""
    target_angles: Tuple[float, ...] = ()
    captured: FrozenSet[int] = frozenset()
    capture_order: Tuple[int, ...] = ()
    heading: float = 0.0
    nearest_uncaptured: Optional[int] = None
    tolerance: float = DEFAULT_TOLERANCE

    @property
    def target_count(self) -> int:
        return len(self.target_angles)

    @property
    def captured_count(self) -> int:
        return len(self.captured)

    @property
    def is_complete(self) -> bool:
        return self.target_count > 0 and self.captured_count >= self.target_count

    @property
    def uncaptured(self) -> Tuple[int, ...]:
        return tuple(i for i in range(self.target_count) if i not in self.captured)


def start_state(
    start_heading: float,
    target_count: int = DEFAULT_TARGET_COUNT,
    tolerance: float = DEFAULT_TOLERANCE
) -> SchedulerState:
    """
    Build the initial state of a session.

    Targets are generated once from the heading the user is facing when the
    session starts; nothing is captured yet and the nearest target is index 0.
    """
    if tolerance < 0:
        raise ValueError(f"Tolerance must be non-negative, got {tolerance}")

    targets = tuple(generate_target_angles(start_heading, target_count))
    return SchedulerState(
        target_angles=targets,
        heading=normalize_heading(start_heading),
        nearest_uncaptured=0,
        tolerance=tolerance,
    )


def nearest_uncaptured_index(state: SchedulerState, heading: float) -> Optional[int]:
    """Index of the closest uncaptured target, smallest index on ties."""
    remaining = state.uncaptured
    if not remaining:
        return None

    distances = angular_distances(heading, [state.target_angles[i] for i in remaining])
    # argmin returns the first minimum, and remaining is ascending
    return remaining[int(np.argmin(distances))]


def observe_heading(
    state: SchedulerState,
    heading: float
) -> Tuple[SchedulerState, CaptureDecision]:
    """
    Apply one heading observation to a scheduler state.

    At most one target fires per observation: uncaptured targets are scanned
    in ascending index order and the first within tolerance wins.

    Returns:
        Tuple of (next_state, decision)
    """
    heading = normalize_heading(heading)

    if state.is_complete:
        return replace(state, heading=heading, nearest_uncaptured=None), CaptureDecision(complete=True)

    remaining = state.uncaptured
    distances = angular_distances(heading, [state.target_angles[i] for i in remaining])
    within = np.flatnonzero(distances <= state.tolerance)

    captured = state.captured
    capture_order = state.capture_order
    target_index = None
    if within.size > 0:
        target_index = remaining[int(within[0])]
        captured = captured | {target_index}
        capture_order = capture_order + (target_index,)

    next_state = replace(
        state,
        captured=captured,
        capture_order=capture_order,
        heading=heading,
    )
    next_state = replace(next_state, nearest_uncaptured=nearest_uncaptured_index(next_state, heading))

    return next_state, CaptureDecision(target_index=target_index, complete=next_state.is_complete)


@dataclass
class AngleScheduler:
    """Stateful wrapper around `observe_heading`."""
    target_count: int = DEFAULT_TARGET_COUNT
    tolerance: float = DEFAULT_TOLERANCE
    state: SchedulerState = field(default_factory=SchedulerState)

    def start(self, start_heading: float) -> SchedulerState:
        self.state = start_state(start_heading, self.target_count, self.tolerance)
        return self.state

    def observe(self, heading: float) -> CaptureDecision:
        self.state, decision = observe_heading(self.state, heading)
        return decision

    @property
    def target_angles(self) -> Tuple[float, ...]:
        return self.state.target_angles

    @property
    def captured_indices(self) -> FrozenSet[int]:
        return self.state.captured

    @property
    def nearest_uncaptured(self) -> Optional[int]:
        return self.state.nearest_uncaptured
