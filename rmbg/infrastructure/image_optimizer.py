"""Pillow-backed re-encoding of remove.bg output.

remove.bg returns PNG (or WebP when asked for it). These helpers shrink that
output or convert it to WebP locally. The output keeps its alpha channel and
drops metadata.
"""

from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

COMPRESSION_EFFORT = 6

_PIL_FORMATS = {"png": "PNG", "webp": "WEBP"}


class ImageOptimizationError(ValueError):
    pass


def _load(data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, SyntaxError, Image.DecompressionBombError) as exc:
        raise ImageOptimizationError(f"cannot decode image: {exc}") from exc

    width, height = image.size
    if width <= 0 or height <= 0:
        raise ImageOptimizationError("image has no pixels")
    return image


def _encode(image: Image.Image, output_format: str, quality: int | None) -> bytes:
    pil_format = _PIL_FORMATS.get(output_format)
    if pil_format is None:
        raise ImageOptimizationError(f"unsupported output format: {output_format}")

    if image.mode not in ("RGBA", "RGB", "LA", "L"):
        image = image.convert("RGBA")

    image.info = {key: value for key, value in image.info.items() if key == "transparency"}
    if pil_format == "WEBP":
        params: dict[str, object] = {"method": COMPRESSION_EFFORT}
        if quality is not None:
            params["quality"] = quality
    else:
        params = {"optimize": True, "compress_level": COMPRESSION_EFFORT}

    output = io.BytesIO()
    try:
        image.save(output, format=pil_format, **params)
    except (OSError, ValueError) as exc:
        raise ImageOptimizationError(f"cannot encode {output_format}: {exc}") from exc
    return output.getvalue()


def optimize_image(data: bytes, output_format: str, quality: int) -> bytes:
    """Re-encode `data` as `output_format`.

    PNG is lossless, so `quality` only affects WebP output.
    """
    with _load(data) as image:
        return _encode(image, output_format, quality)


def convert_to_webp(data: bytes) -> bytes:
    with _load(data) as image:
        return _encode(image, "webp", None)
