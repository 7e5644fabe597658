"""Thumbnail generation for uploaded photos."""

from pathlib import Path
from typing import Tuple, Union
import logging

from PIL import Image, ImageOps, UnidentifiedImageError


logger = logging.getLogger(__name__)

JPEG_QUALITY = 85


class ThumbnailError(Exception):
    """Raised when an upload cannot be decoded or re-encoded as an image."""


def make_thumbnail(
    source: Union[str, Path], destination: Union[str, Path], width: int
) -> Tuple[int, int]:
    """Resize *source* to *width* pixels wide and save it to *destination*.

    The height follows the original aspect ratio and the image is written in
    the same format it was read in. EXIF orientation is applied first so
    portrait phone photos keep their orientation.

    :return: ``(width, height)`` of the written thumbnail.
    """
    if width <= 0:
        raise ValueError("Thumbnail width must be positive")
    try:
        with Image.open(Path(source)) as img:
            fmt = img.format
            if not fmt:
                raise ThumbnailError(f"Unknown image format: {source}")
            oriented = ImageOps.exif_transpose(img)
            height = max(1, round(oriented.height * width / oriented.width))
            thumb = oriented.resize((width, height), Image.Resampling.LANCZOS)
    except (UnidentifiedImageError, OSError) as exc:
        raise ThumbnailError(f"Cannot read image {Path(source).name}: {exc}") from exc

    save_args = {}
    if fmt == "JPEG":
        if thumb.mode not in ("RGB", "L"):
            thumb = thumb.convert("RGB")
        save_args["quality"] = JPEG_QUALITY
    try:
        thumb.save(Path(destination), format=fmt, **save_args)
    except (KeyError, ValueError, OSError) as exc:
        raise ThumbnailError(f"Cannot write thumbnail {Path(destination).name}: {exc}") from exc
    logger.debug("Thumbnail %s written at %sx%s", destination, width, height)
    return width, height
