"""Image loading, downscaling and JPEG encoding helpers."""

import io
from pathlib import Path
from typing import Any, Union

import numpy as np
from PIL import Image, UnidentifiedImageError


class ImageDecodeError(Exception):
    """A frame could not be decoded into an image."""
    pass


def to_pil_image(payload: Any) -> Image.Image:
    """
    Coerce a frame payload into an RGB PIL image.

    Accepts a PIL image, an HxWx3 / HxW uint8 array (RGB), or encoded
    image bytes.
    """
    if isinstance(payload, Image.Image):
        image = payload
    elif isinstance(payload, np.ndarray):
        array = payload
        if array.dtype != np.uint8:
            array = np.clip(array, 0, 255).astype(np.uint8)
        image = Image.fromarray(array)
    elif isinstance(payload, (bytes, bytearray)):
        try:
            image = Image.open(io.BytesIO(payload))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ImageDecodeError(f"Could not decode image bytes: {e}")
    else:
        raise ImageDecodeError(f"Unsupported frame payload type: {type(payload).__name__}")

    if image.mode != "RGB":
        image = image.convert("RGB")
    return image


def load_image(path: Path) -> Image.Image:
    """Load an image file from disk as RGB."""
    try:
        with Image.open(path) as img:
            img.load()
            return img.convert("RGB")
    except (FileNotFoundError, UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"Could not read image {path}: {e}")


def resize_to_max_dimension(image: Image.Image, max_dimension: int = 1024) -> Image.Image:
    """
    Downscale so the longer side is at most max_dimension, keeping aspect.

    Images already within bounds are returned unchanged.
    """
    width, height = image.size
    longest = max(width, height)
    if longest <= max_dimension:
        return image

    scale = max_dimension / longest
    new_size = (max(1, round(width * scale)), max(1, round(height * scale)))
    return image.resize(new_size, Image.Resampling.LANCZOS)


def encode_jpeg(image: Image.Image, quality: int = 80) -> bytes:
    """Encode an image as JPEG bytes."""
    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def prepare_upload_image(
    source: Union[Path, Image.Image],
    max_dimension: int = 1024,
    quality: int = 80
) -> bytes:
    """Load (if needed), downscale and re-encode a frame for upload."""
    image = load_image(source) if isinstance(source, Path) else to_pil_image(source)
    return encode_jpeg(resize_to_max_dimension(image, max_dimension), quality)
