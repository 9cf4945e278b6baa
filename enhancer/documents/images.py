"""Pillow/numpy helpers shared by analysis, asset rendering and composition."""

import io

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from enhancer.documents.exceptions import DocumentReadError
from enhancer.engines.color import rgb_to_hex

THUMBNAIL_SIZE = (400, 300)
MAX_ANALYSIS_SIDE = 2048
_QUANT_STEP = 32


def open_image(data: bytes) -> Image.Image:
    """Decode image bytes; the result is fully loaded.

    Raises:
        DocumentReadError: if the bytes are not a readable image.
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise DocumentReadError(f"Cannot decode image: {exc}") from exc
    return image


def to_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def encode(image: Image.Image, fmt: str) -> bytes:
    """Encode to PNG, JPEG or WEBP; JPEG drops any alpha channel."""
    fmt = fmt.upper()
    if fmt == "JPG":
        fmt = "JPEG"
    if fmt == "JPEG" and image.mode != "RGB":
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def analysis_png(image: Image.Image) -> bytes:
    """RGB PNG no larger than MAX_ANALYSIS_SIDE on either side."""
    rgb = image.convert("RGB")
    rgb.thumbnail((MAX_ANALYSIS_SIDE, MAX_ANALYSIS_SIDE))
    return to_png(rgb)


def dominant_color(image: Image.Image) -> str:
    """Most frequent color after coarse quantization of a downsampled copy."""
    sample = image.convert("RGB").resize((64, 64))
    pixels = np.asarray(sample, dtype=np.int32).reshape(-1, 3)
    quantized = (pixels // _QUANT_STEP) * _QUANT_STEP + _QUANT_STEP // 2
    colors, counts = np.unique(quantized, axis=0, return_counts=True)
    r, g, b = colors[int(np.argmax(counts))]
    return rgb_to_hex(float(r), float(g), float(b))


def thumbnail(image: Image.Image, size: tuple[int, int] = THUMBNAIL_SIZE) -> bytes:
    """Fit inside `size` keeping aspect ratio, centered on white."""
    fitted = ImageOps.contain(image.convert("RGB"), size)
    canvas = Image.new("RGB", size, (255, 255, 255))
    canvas.paste(fitted, ((size[0] - fitted.width) // 2, (size[1] - fitted.height) // 2))
    return to_png(canvas)
