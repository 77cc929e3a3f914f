"""Filesystem and naming helpers."""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePath

logger = logging.getLogger(__name__)

_SIZE_UNITS = ["B", "KB", "MB", "GB"]
_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def ensure_directory(path: Path) -> Path:
    """Create a directory if it does not exist."""

    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)
    return path


def display_name_for(filename: str | None, fallback: str = "sheet.png") -> str:
    """Strip any client-side directory components from an uploaded filename."""

    if not filename:
        return fallback
    name = PurePath(filename.replace("\\", "/")).name
    return name or fallback


def derive_artifact_name(display_name: str, suffix: str = ".gif") -> str:
    """Replace the extension of a source name, e.g. ``walk.png`` -> ``walk.gif``."""

    if not suffix.startswith("."):
        suffix = "." + suffix
    stem = _UNSAFE_CHARS.sub("_", PurePath(display_name).stem).strip() or "animation"
    return f"{stem}{suffix}"


def unique_path(directory: Path, filename: str) -> Path:
    """Return a path in ``directory`` that does not overwrite an existing file."""

    candidate = directory / filename
    counter = 1
    while candidate.exists():
        candidate = directory / f"{Path(filename).stem}_{counter}{Path(filename).suffix}"
        counter += 1
    return candidate


def format_file_size(size: int) -> str:
    """Human readable size with base 1024 and one decimal, e.g. ``1.5 KB``."""

    if size <= 0:
        return "0 B"
    value = float(size)
    index = 0
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    text = f"{value:.1f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[index]}"
