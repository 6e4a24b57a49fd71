"""
Capture Session

Holds the scheduler state and the captured frames of one 360 degree turn.
Frames are materialized lazily: the frame provider is only called when an
observation actually fires a capture.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

from rich.console import Console

from utils.imaging import ImageDecodeError, to_pil_image
from .scheduler import (
    DEFAULT_TARGET_COUNT,
    DEFAULT_TOLERANCE,
    CaptureDecision,
    SchedulerState,
    observe_heading,
    start_state,
)

console = Console()

# A session may be finished once this many targets are captured
MIN_FRAMES_TO_FINISH = 8


class CaptureError(Exception):
    """Error during capture or frame export."""
    pass


@dataclass(frozen=True)
class CapturedFrame:
    """A still frame that satisfied one target angle."""
    image: Any
    target_index: int
    heading: float
    captured_at: float = 0.0


@dataclass(frozen=True)
class ExportedFrame:
    """A captured frame with its position in the finalized, target-ordered list."""
    export_index: int
    frame: CapturedFrame

    @property
    def file_name(self) -> str:
        return f"capture_{self.export_index:02d}.jpg"


FrameProvider = Callable[[], Optional[Any]]


@dataclass
class CaptureSession:
    """Per-run capture state: scheduler snapshot plus captured frames."""
    target_count: int = DEFAULT_TARGET_COUNT
    tolerance: float = DEFAULT_TOLERANCE
    min_frames: int = MIN_FRAMES_TO_FINISH
    state: SchedulerState = field(default_factory=SchedulerState)
    frames: List[CapturedFrame] = field(default_factory=list)
    is_active: bool = False

    def start(self, start_heading: float, target_count: Optional[int] = None) -> SchedulerState:
        """Reset the session and generate targets around start_heading."""
        if target_count is not None:
            self.target_count = target_count
        self.state = start_state(start_heading, self.target_count, self.tolerance)
        self.frames = []
        self.is_active = True
        return self.state

    def observe(self, heading: float, frame_provider: FrameProvider) -> Optional[CapturedFrame]:
        """
        Feed one heading observation.

        Args:
            heading: Current device heading in degrees
            frame_provider: Called only when a capture fires; returns the
                frame payload, or None if the frame could not be decoded

        Returns:
            The new CapturedFrame, or None if nothing was captured
        """
        if not self.is_active:
            return None

        next_state, decision = observe_heading(self.state, heading)

        if decision.should_capture:
            image = frame_provider()
            if image is None:
                # Target stays uncaptured and can fire on a later frame
                return None
            frame = CapturedFrame(
                image=image,
                target_index=decision.target_index,
                heading=next_state.heading,
                captured_at=time.time(),
            )
            self.frames.append(frame)
            self.state = next_state
            if decision.complete:
                self.stop()
            return frame

        self.state = next_state
        if decision.complete:
            self.stop()
        return None

    def stop(self) -> None:
        """Freeze the session; further observations are ignored."""
        self.is_active = False

    def finalize(self) -> List[ExportedFrame]:
        """Frames sorted by target index with sequential export indices."""
        ordered = sorted(self.frames, key=lambda f: f.target_index)
        return [ExportedFrame(export_index=i, frame=f) for i, f in enumerate(ordered)]

    @property
    def captured_count(self) -> int:
        return self.state.captured_count

    @property
    def is_complete(self) -> bool:
        return self.state.is_complete

    @property
    def can_finish(self) -> bool:
        return self.captured_count >= min(self.min_frames, self.target_count)

    @property
    def remaining_to_finish(self) -> int:
        return max(0, min(self.min_frames, self.target_count) - self.captured_count)

    @property
    def nearest_uncaptured(self) -> Optional[int]:
        return self.state.nearest_uncaptured

    def guidance(self) -> Tuple[Optional[int], Optional[float]]:
        """Nearest uncaptured target index and its angle, for on-screen guidance."""
        index = self.state.nearest_uncaptured
        if index is None:
            return None, None
        return index, self.state.target_angles[index]


def export_frames(
    exported: List[ExportedFrame],
    output_dir: Path,
    quality: int = 90
) -> List[Path]:
    """
    Write finalized frames to disk as capture_XX.jpg.

    Frames that cannot be converted to an image are reported and skipped.

    Returns:
        Paths of the written files, in export order
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    saved = []
    for item in exported:
        path = output_dir / item.file_name
        try:
            image = to_pil_image(item.frame.image)
            image.save(path, format="JPEG", quality=quality)
        except (ImageDecodeError, OSError) as e:
            console.print(f"[yellow]Skipping frame {item.file_name}: {e}[/yellow]")
            continue
        saved.append(path)

    console.print(f"[green]Exported {len(saved)} frames to {output_dir}[/green]")
    return saved
