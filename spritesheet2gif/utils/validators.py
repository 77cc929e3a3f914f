"""Validation helpers for user inputs."""

from __future__ import annotations

from pathlib import PurePath
from typing import Any

from ..core.errors import InvalidGridError, SettingsRangeError


ALLOWED_IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".gif"}
ALLOWED_IMAGE_FORMATS = {"PNG", "JPEG", "WEBP", "GIF"}

SETTING_BOUNDS: dict[str, tuple[int, int]] = {
    "columns": (1, 12),
    "rows": (1, 12),
    "frames_per_second": (1, 30),
    "quality": (1, 20),
}
BOOLEAN_SETTINGS = {"loop_forever", "transparent_background"}


def validate_setting(field: str, value: Any) -> Any:
    """Return the value if it is acceptable for the named setting."""

    if field in SETTING_BOUNDS:
        minimum, maximum = SETTING_BOUNDS[field]
        # bool is an int subclass; True must not pass as 1
        if isinstance(value, bool) or not isinstance(value, int):
            raise SettingsRangeError(field, value, minimum, maximum)
        if value < minimum or value > maximum:
            raise SettingsRangeError(field, value, minimum, maximum)
        return value
    if field in BOOLEAN_SETTINGS:
        if not isinstance(value, bool):
            raise SettingsRangeError(field, value)
        return value
    raise SettingsRangeError(field, value)


def validate_grid(columns: int, rows: int) -> None:
    """Ensure grid dimensions are positive."""

    if columns < 1:
        raise InvalidGridError(f"Columns must be at least 1 (got {columns})")
    if rows < 1:
        raise InvalidGridError(f"Rows must be at least 1 (got {rows})")


def has_image_extension(filename: str | None) -> bool:
    """Cheap pre-check on the uploaded filename before decoding."""

    if not filename:
        return False
    return PurePath(filename).suffix.lower() in ALLOWED_IMAGE_EXTENSIONS
