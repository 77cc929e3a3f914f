"""Core data model for sprite sheet to GIF conversion."""

__all__ = [
    "Settings",
    "Source",
    "Artifact",
    "GridLayout",
    "ProgressEvent",
    "ItemFailure",
    "BatchSummary",
]

from dataclasses import dataclass, field
from typing import NamedTuple, Optional

from PIL import Image


@dataclass(frozen=True)
class Settings:
    """Slicing and encoding configuration shared by every source in a batch."""

    columns: int = 4
    rows: int = 4
    frames_per_second: int = 10
    quality: int = 10
    loop_forever: bool = True
    transparent_background: bool = False


@dataclass(eq=False)
class Source:
    """One uploaded sprite sheet."""

    id: str
    display_name: str
    image: Image.Image = field(repr=False)
    pixel_width: int
    pixel_height: int
    byte_size: int = 0
    selected: bool = True


@dataclass(eq=False)
class Artifact:
    """One encoded animation produced from a source."""

    source_id: str
    encoded_bytes: bytes = field(repr=False)
    derived_name: str
    tile_width: int
    tile_height: int
    frame_count: int

    @property
    def byte_size(self) -> int:
        return len(self.encoded_bytes)


class GridLayout(NamedTuple):
    """Tile size for a sheet and the remainder pixels the grid leaves unused."""

    tile_width: int
    tile_height: int
    discarded_width: int
    discarded_height: int


@dataclass(frozen=True)
class ProgressEvent:
    """Progress snapshot emitted while a batch runs."""

    completed: int
    total: int
    label: str
    source_id: Optional[str] = None

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.completed / self.total * 100)


@dataclass(frozen=True)
class ItemFailure:
    """A non-fatal failure for one source inside a batch."""

    source_id: str
    source_name: str
    reason: str

    def __str__(self) -> str:
        return f'"{self.source_name}" failed: {self.reason}'


@dataclass
class BatchSummary:
    """Outcome of a finished batch run."""

    requested: int
    succeeded: list[str] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def produced(self) -> int:
        return len(self.succeeded)

    @property
    def message(self) -> str:
        return f"Generated {self.produced} of {self.requested} animations"
