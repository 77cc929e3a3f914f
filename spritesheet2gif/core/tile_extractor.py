"""Slicing of sprite sheets into equally sized animation frames."""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional

from PIL import Image

from . import GridLayout
from .errors import InvalidGridError
from ..utils import validators

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255, 255)
TRANSPARENT = (0, 0, 0, 0)


def plan_grid(width: int, height: int, columns: int, rows: int) -> GridLayout:
    """Compute tile size for a grid; leftover pixels are truncated, not an error."""

    validators.validate_grid(columns, rows)
    tile_width = width // columns
    tile_height = height // rows
    if tile_width == 0 or tile_height == 0:
        raise InvalidGridError(
            f"Grid {columns}x{rows} is larger than the {width}x{height} image"
        )
    layout = GridLayout(
        tile_width=tile_width,
        tile_height=tile_height,
        discarded_width=width - tile_width * columns,
        discarded_height=height - tile_height * rows,
    )
    if layout.discarded_width or layout.discarded_height:
        logger.debug(
            "Grid %sx%s leaves %spx horizontally and %spx vertically unused",
            columns,
            rows,
            layout.discarded_width,
            layout.discarded_height,
        )
    return layout


def iter_tile_boxes(columns: int, rows: int, tile_width: int, tile_height: int) -> Iterator[tuple[int, int, int, int]]:
    """Yield crop boxes in playback order: left to right, then top to bottom."""

    for row in range(rows):
        for col in range(columns):
            x = col * tile_width
            y = row * tile_height
            yield (x, y, x + tile_width, y + tile_height)


def extract_tiles(
    bitmap: Image.Image,
    columns: int,
    rows: int,
    transparent: bool,
    tile_width: Optional[int] = None,
    tile_height: Optional[int] = None,
) -> List[Image.Image]:
    """Cut ``bitmap`` into ``columns * rows`` RGBA frames.

    Pixels outside the bitmap (only reachable with explicit tile sizes) and
    transparent source pixels end up white when ``transparent`` is false and
    stay transparent otherwise.
    """

    if tile_width is None or tile_height is None:
        layout = plan_grid(bitmap.width, bitmap.height, columns, rows)
        tile_width = tile_width or layout.tile_width
        tile_height = tile_height or layout.tile_height
    else:
        validators.validate_grid(columns, rows)
        if tile_width < 1 or tile_height < 1:
            raise InvalidGridError(f"Tile size must be positive (got {tile_width}x{tile_height})")

    source = bitmap if bitmap.mode == "RGBA" else bitmap.convert("RGBA")
    background = TRANSPARENT if transparent else WHITE

    tiles: list[Image.Image] = []
    for box in iter_tile_boxes(columns, rows, tile_width, tile_height):
        frame = Image.new("RGBA", (tile_width, tile_height), background)
        # crop() pads out-of-bounds regions with transparent black
        frame.alpha_composite(source.crop(box))
        tiles.append(frame)
    return tiles
