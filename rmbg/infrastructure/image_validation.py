from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

SUPPORTED_INPUT_FORMATS = frozenset({"JPEG", "PNG", "WEBP"})

# Pillow reports damaged files through several unrelated exception types.
_DECODE_ERRORS = (UnidentifiedImageError, OSError, SyntaxError, Image.DecompressionBombError)


class ImageValidationError(ValueError):
    pass


def _inspect(image_bytes: bytes) -> tuple[int, int, str]:
    with Image.open(io.BytesIO(image_bytes)) as image:
        image.verify()
    # verify() leaves the image unusable, so reopen for size and format.
    with Image.open(io.BytesIO(image_bytes)) as image:
        width, height = image.size
        return width, height, (image.format or "").upper()


def validate_image_bytes(image_bytes: bytes, max_bytes: int) -> tuple[int, int, str]:
    """Check an input image locally before it is uploaded.

    Returns `(width, height, format)`. Raises `ImageValidationError` for
    input remove.bg would reject or charge for without a usable result.
    """
    if not image_bytes:
        raise ImageValidationError("image file is empty")
    if len(image_bytes) > max_bytes:
        raise ImageValidationError(f"image is {len(image_bytes)} bytes, upload limit is {max_bytes}")

    try:
        width, height, fmt = _inspect(image_bytes)
    except _DECODE_ERRORS as exc:
        raise ImageValidationError(f"unreadable image: {exc}") from exc

    if fmt not in SUPPORTED_INPUT_FORMATS:
        raise ImageValidationError(f"unsupported image format {fmt or 'UNKNOWN'}, expected JPEG, PNG or WebP")
    if width <= 0 or height <= 0:
        raise ImageValidationError(f"image has no pixels ({width}x{height})")

    return width, height, fmt
