"""Decoding of uploaded sprite sheets into RGBA bitmaps."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from .errors import DecodeError
from ..utils.validators import ALLOWED_IMAGE_FORMATS

logger = logging.getLogger(__name__)


@dataclass
class DecodedImage:
    """A decoded bitmap and its pixel dimensions."""

    width: int
    height: int
    image: Image.Image


def decode_image(raw: bytes, name: str = "<upload>") -> DecodedImage:
    """Decode raw file bytes into an RGBA bitmap.

    Animated GIF and WebP inputs are treated as static images: only the first
    frame is used.
    """

    if not raw:
        raise DecodeError(name, reason="File is empty")

    try:
        with Image.open(io.BytesIO(raw)) as img:
            image_format = img.format
            if image_format not in ALLOWED_IMAGE_FORMATS:
                raise DecodeError(name, reason=f"Unsupported format {image_format or 'unknown'}")
            img.seek(0)
            bitmap = img.convert("RGBA")
    except DecodeError:
        raise
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise DecodeError(name, reason=str(exc)) from exc
    except (OSError, ValueError, SyntaxError) as exc:
        # truncated or corrupt data surfaces from the plugin decoders
        raise DecodeError(name, reason=f"Corrupt image data: {exc}") from exc

    width, height = bitmap.size
    if width < 1 or height < 1:
        raise DecodeError(name, reason="Image has no pixels")

    logger.debug("Decoded %s -> %sx%s (%s)", name, width, height, image_format)
    return DecodedImage(width=width, height=height, image=bitmap)

