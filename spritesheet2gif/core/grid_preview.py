"""Grid overlay preview for a sprite sheet."""

from __future__ import annotations

import numpy as np
from PIL import Image, ImageDraw

from ..utils import validators

GRID_COLOR = (255, 0, 0, 255)
LINE_WIDTH = 2


def grid_line_positions(length: int, divisions: int) -> list[int]:
    """Interior boundaries of ``divisions`` equal parts of ``length``."""

    return [int(round(p)) for p in np.linspace(0, length, num=divisions + 1)[1:-1]]


def render_grid_preview(image: Image.Image, columns: int, rows: int, max_width: int = 400) -> Image.Image:
    """Return a copy of ``image`` scaled to ``max_width`` with the grid drawn on top."""

    validators.validate_grid(columns, rows)
    scale = min(max_width / image.width, 1.0)
    size = (max(1, int(image.width * scale)), max(1, int(image.height * scale)))
    preview = image.convert("RGBA")
    if size != preview.size:
        preview = preview.resize(size, Image.LANCZOS)
    else:
        preview = preview.copy()

    draw = ImageDraw.Draw(preview)
    width, height = preview.size
    for x in grid_line_positions(width, columns):
        draw.line([(x, 0), (x, height)], fill=GRID_COLOR, width=LINE_WIDTH)
    for y in grid_line_positions(height, rows):
        draw.line([(0, y), (width, y)], fill=GRID_COLOR, width=LINE_WIDTH)
    draw.text((10, 8), f"{columns}×{rows} grid", fill=GRID_COLOR)
    return preview
