#!/usr/bin/env python3
"""
Generate a synthetic 360° capture turn.

Renders a video of a camera turning in place inside a striped cylindrical
room, plus the matching heading log. Use this to exercise the capture replay
and the export step without a device.

Usage:
    python scripts/generate_synthetic_turn.py [output_dir]

Then replay it:
    python -m generation.process capture synthetic_turn/turn.avi \
        synthetic_turn/heading_log.json synthetic_turn/frames/
"""

import json
import sys
from pathlib import Path
from typing import Tuple

import cv2
import numpy as np
from PIL import Image, ImageDraw


# ── Scene: striped cylinder ──────────────────────────────────────────

PIXELS_PER_DEGREE = 4
PANORAMA_H = 240
STRIPE_DEGREES = 30

# One color per 30° stripe, so every view shows where it points
STRIPE_COLORS = [
    (220, 40, 40), (220, 130, 40), (220, 220, 40), (130, 220, 40),
    (40, 220, 40), (40, 220, 130), (40, 220, 220), (40, 130, 220),
    (40, 40, 220), (130, 40, 220), (220, 40, 220), (220, 40, 130),
]


# ── Camera settings ──────────────────────────────────────────────────

IMAGE_W = 320
IMAGE_H = 240
FIELD_OF_VIEW = 60.0  # degrees


# ── Rendering ────────────────────────────────────────────────────────

def build_panorama() -> np.ndarray:
    """Full 360° panorama as an RGB array, heading 0 at column 0."""
    width = 360 * PIXELS_PER_DEGREE
    image = Image.new("RGB", (width, PANORAMA_H), (200, 200, 200))
    draw = ImageDraw.Draw(image)

    stripe_w = STRIPE_DEGREES * PIXELS_PER_DEGREE
    for i, color in enumerate(STRIPE_COLORS):
        x0 = i * stripe_w
        draw.rectangle([x0, 0, x0 + stripe_w - 1, PANORAMA_H - 1], fill=color)
        # Tick every 10° for visible motion between frames
        for tick in range(0, STRIPE_DEGREES, 10):
            x = x0 + tick * PIXELS_PER_DEGREE
            draw.line([x, PANORAMA_H // 3, x, 2 * PANORAMA_H // 3], fill=(20, 20, 20), width=2)

    return np.asarray(image)


def render_view(panorama: np.ndarray, heading: float) -> np.ndarray:
    """Crop the panorama around a heading and scale it to the output frame."""
    pano_w = panorama.shape[1]
    half = int(FIELD_OF_VIEW / 2 * PIXELS_PER_DEGREE)
    center = int(round(heading * PIXELS_PER_DEGREE)) % pano_w

    columns = np.arange(center - half, center + half) % pano_w
    view = panorama[:, columns]
    return cv2.resize(view, (IMAGE_W, IMAGE_H), interpolation=cv2.INTER_AREA)


# ── Turn generation ──────────────────────────────────────────────────

def generate_turn(
    output_dir: Path,
    start_heading: float = 0.0,
    duration: float = 12.0,
    fps: float = 30.0,
    start_time: float = 100.0,
) -> Tuple[Path, Path]:
    """
    Write turn.avi (MJPG) and heading_log.json into output_dir.

    The camera turns once at constant speed; the last frame stops one step
    short of the start heading. One heading sample is logged per frame,
    timestamped on a clock starting at start_time.

    Returns:
        Tuple of (video_path, log_path)
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    video_path = output_dir / "turn.avi"
    log_path = output_dir / "heading_log.json"

    frame_count = int(round(duration * fps))
    panorama = build_panorama()

    writer = cv2.VideoWriter(
        str(video_path),
        cv2.VideoWriter_fourcc(*"MJPG"),
        fps,
        (IMAGE_W, IMAGE_H),
    )
    if not writer.isOpened():
        raise RuntimeError(f"Could not open video writer for {video_path}")

    samples = []
    try:
        for i in range(frame_count):
            heading = (start_heading + 360.0 * i / frame_count) % 360.0
            view = render_view(panorama, heading)
            writer.write(cv2.cvtColor(view, cv2.COLOR_RGB2BGR))
            samples.append({
                "timestamp": start_time + i / fps,
                "heading": heading,
            })
    finally:
        writer.release()

    log = {
        "video_path": video_path.name,
        "start_heading": start_heading,
        "samples": samples,
    }
    with open(log_path, "w") as f:
        json.dump(log, f, indent=2)

    return video_path, log_path


# ── Main ─────────────────────────────────────────────────────────────

def main():
    out = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("synthetic_turn")

    print(f"Generating synthetic turn in {out} …")
    video_path, log_path = generate_turn(out)

    video_mb = video_path.stat().st_size / (1024 * 1024)
    print(f"\nVideo: {video_path}  ({video_mb:.1f} MB)")
    print(f"  {IMAGE_W}×{IMAGE_H}  |  FOV {FIELD_OF_VIEW:.0f}°  |  {len(STRIPE_COLORS)} stripes")
    print(f"Heading log: {log_path}")
    print(f"\nReplay:  python -m generation.process capture {video_path} {log_path} {out / 'frames'}")


if __name__ == "__main__":
    main()
