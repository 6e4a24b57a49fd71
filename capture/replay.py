"""
Capture Replay

Drives a CaptureSession offline from a recorded video and its heading log.
Each video frame is matched to the nearest heading sample by timestamp; the
frame is only decoded when the scheduler asks for a capture.
"""

from pathlib import Path
from typing import Optional

import cv2
import numpy as np
from rich.console import Console

from utils.validation import HeadingLog
from .scheduler import DEFAULT_TARGET_COUNT
from .session import CaptureError, CaptureSession

console = Console()

DEFAULT_FPS = 30.0


def replay_capture(
    video_path: Path,
    log: HeadingLog,
    session: Optional[CaptureSession] = None,
    max_time_diff: float = 0.25,
) -> CaptureSession:
    """
    Replay a recorded turn through a capture session.

    Args:
        video_path: Video recorded during the turn
        log: Heading samples; the video starts at the first sample timestamp
        session: Session to drive. Its target count wins over the log's;
            if None, a session is built from the log's target count (or
            the default of 18)
        max_time_diff: Frames farther than this (seconds) from any heading
            sample are ignored

    Returns:
        The session, stopped, holding the captured frames
    """
    if session is None:
        session = CaptureSession(target_count=log.target_count or DEFAULT_TARGET_COUNT)
    elif log.target_count is not None and log.target_count != session.target_count:
        console.print(f"[yellow]Heading log asks for {log.target_count} targets; "
                      f"using {session.target_count}[/yellow]")

    capture = cv2.VideoCapture(str(video_path))
    if not capture.isOpened():
        raise CaptureError(f"Could not open video: {video_path}")

    fps = capture.get(cv2.CAP_PROP_FPS) or DEFAULT_FPS
    sample_times = np.array([s.timestamp for s in log.samples])
    sample_headings = [s.heading for s in log.samples]
    video_start_time = sample_times[0]

    def provide_frame():
        ok, frame = capture.retrieve()
        if not ok or frame is None:
            return None
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    console.print(f"[blue]Replaying {video_path.name} against {len(log.samples)} heading samples...[/blue]")

    session.start(log.first_heading)
    frame_number = 0
    unmatched = 0
    try:
        while session.is_active:
            if not capture.grab():
                break

            frame_time = video_start_time + frame_number / fps
            frame_number += 1

            time_diffs = np.abs(sample_times - frame_time)
            nearest = int(np.argmin(time_diffs))
            if time_diffs[nearest] > max_time_diff:
                unmatched += 1
                continue

            frame = session.observe(sample_headings[nearest], provide_frame)
            if frame is not None:
                console.print(
                    f"  [dim]target {frame.target_index:02d} at {frame.heading:.1f}° "
                    f"(frame {frame_number - 1})[/dim]"
                )
    finally:
        capture.release()

    session.stop()

    console.print(f"[green]Captured {session.captured_count}/{session.target_count} targets "
                  f"from {frame_number} frames[/green]")
    if unmatched > 0:
        console.print(f"[yellow]Skipped {unmatched} frames (no heading sample nearby)[/yellow]")
    if not session.can_finish:
        console.print(f"[yellow]{session.remaining_to_finish} more captures needed to finish[/yellow]")

    return session
