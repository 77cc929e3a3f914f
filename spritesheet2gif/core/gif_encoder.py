"""Animated GIF encoding for extracted tiles."""

from __future__ import annotations

import io
import logging
from typing import Protocol, Sequence

from PIL import Image
from starlette.concurrency import run_in_threadpool

from .errors import EncodingError

logger = logging.getLogger(__name__)

MAX_PALETTE_COLORS = 256
PALETTE_STEP = 12
TRANSPARENT_INDEX = 255
ALPHA_THRESHOLD = 128


class FrameEncoder(Protocol):
    """What the batch orchestrator needs from an animation encoder.

    Implementations may suspend while encoding and must raise
    :class:`EncodingError` on failure. Frames are rendered in the order given.
    """

    async def encode(
        self,
        frames: Sequence[Image.Image],
        frame_delay_ms: int,
        loop_count: int,
        quality: int,
        canvas_width: int,
        canvas_height: int,
    ) -> bytes: ...


def frame_delay_ms(frames_per_second: int) -> int:
    """Per-frame delay in milliseconds, halves rounded up."""

    return int(1000 / frames_per_second + 0.5)


def loop_count_for(loop_forever: bool) -> int:
    """0 plays forever, 1 plays once."""

    return 0 if loop_forever else 1


def palette_size(quality: int) -> int:
    """Map the 1 (best) .. 20 (smallest) quality scale onto a palette size."""

    return max(2, MAX_PALETTE_COLORS - (quality - 1) * PALETTE_STEP)


def _has_transparency(frame: Image.Image) -> bool:
    if frame.mode != "RGBA":
        return False
    low, _high = frame.getchannel("A").getextrema()
    return low < ALPHA_THRESHOLD


def _to_palette(frame: Image.Image, colors: int, transparent: bool) -> Image.Image:
    """Quantize a frame, reserving the last palette slot for transparency."""

    rgba = frame.convert("RGBA")
    if not transparent:
        return rgba.convert("RGB").quantize(colors=colors)

    paletted = rgba.convert("RGB").quantize(colors=min(colors, TRANSPARENT_INDEX))
    palette = paletted.getpalette() or []
    palette = palette[: TRANSPARENT_INDEX * 3]
    palette += [0] * (MAX_PALETTE_COLORS * 3 - len(palette))
    paletted.putpalette(palette)

    mask = rgba.getchannel("A").point(lambda v: 255 if v < ALPHA_THRESHOLD else 0)
    paletted.paste(TRANSPARENT_INDEX, mask=mask)
    return paletted


def encode_gif(
    frames: Sequence[Image.Image],
    frame_delay_ms: int,
    loop_count: int,
    quality: int,
    canvas_width: int,
    canvas_height: int,
) -> bytes:
    """Write ``frames`` as an animated GIF and return the file bytes."""

    if not frames:
        raise EncodingError("No frames to encode")
    for index, frame in enumerate(frames):
        if frame.size != (canvas_width, canvas_height):
            raise EncodingError(
                f"Frame {index} is {frame.width}x{frame.height}, expected {canvas_width}x{canvas_height}"
            )

    colors = palette_size(quality)
    transparent = any(_has_transparency(frame) for frame in frames)

    try:
        paletted = [_to_palette(frame, colors, transparent) for frame in frames]
        params = {
            "format": "GIF",
            "save_all": True,
            "append_images": paletted[1:],
            "duration": frame_delay_ms,
            "disposal": 2,
            "optimize": False,
        }
        if loop_count == 0:
            params["loop"] = 0
        if transparent:
            params["transparency"] = TRANSPARENT_INDEX

        buffer = io.BytesIO()
        paletted[0].save(buffer, **params)
    except (OSError, ValueError) as exc:
        raise EncodingError(str(exc)) from exc

    data = buffer.getvalue()
    logger.debug(
        "Encoded %s frames (%sx%s, %sms, %s colors) -> %s bytes",
        len(frames),
        canvas_width,
        canvas_height,
        frame_delay_ms,
        colors,
        len(data),
    )
    return data


class PillowGifEncoder:
    """Encode GIFs with Pillow in a worker thread so the event loop stays free."""

    async def encode(
        self,
        frames: Sequence[Image.Image],
        frame_delay_ms: int,
        loop_count: int,
        quality: int,
        canvas_width: int,
        canvas_height: int,
    ) -> bytes:
        return await run_in_threadpool(
            encode_gif,
            frames,
            frame_delay_ms,
            loop_count,
            quality,
            canvas_width,
            canvas_height,
        )
