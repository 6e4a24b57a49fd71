"""Utility functions for Orbit capture and generation."""

from .angles import (
    angle_difference,
    azimuths,
    generate_target_angles,
    heading_from_yaw,
    normalize_heading,
)
from .config import GenerationConfig
from .imaging import (
    ImageDecodeError,
    prepare_upload_image,
    resize_to_max_dimension,
)
from .validation import (
    validate_capture_dir,
    validate_heading_log,
)

__all__ = [
    "angle_difference",
    "azimuths",
    "generate_target_angles",
    "heading_from_yaw",
    "normalize_heading",
    "GenerationConfig",
    "ImageDecodeError",
    "prepare_upload_image",
    "resize_to_max_dimension",
    "validate_capture_dir",
    "validate_heading_log",
]
