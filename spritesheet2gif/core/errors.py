"""Domain-specific exceptions for the sprite sheet to GIF pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from . import BatchSummary


class SpriteSheetError(Exception):
    """Base class for every error raised by the pipeline."""


class DecodeError(SpriteSheetError):
    """Raised when an uploaded file is unreadable or not a supported image."""

    def __init__(self, name: str, reason: str | None = None):
        self.name = name
        self.reason = reason
        message = f"Could not decode image: {name}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class InvalidGridError(SpriteSheetError, ValueError):
    """Raised when a grid cannot be laid over a bitmap."""


class SettingsRangeError(SpriteSheetError, ValueError):
    """Raised when a setting is outside its allowed range."""

    def __init__(self, field: str, value: object, minimum: int | None = None, maximum: int | None = None):
        self.field = field
        self.value = value
        if minimum is not None and maximum is not None:
            message = f"{field} must be between {minimum} and {maximum} (got {value!r})"
        else:
            message = f"Invalid value for {field}: {value!r}"
        super().__init__(message)


class EmptyBatchError(SpriteSheetError):
    """Raised when a batch is requested without any source ids."""


class BatchInProgressError(SpriteSheetError):
    """Raised when a batch is requested while another one is still running."""


class EncodingError(SpriteSheetError):
    """Raised when the animation encoder fails for one source."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Encoding failed: {reason}")


class NoArtifactsProducedError(SpriteSheetError):
    """Raised when a non-empty batch finished without a single artifact."""

    def __init__(self, summary: "BatchSummary"):
        self.summary = summary
        super().__init__(f"No animations were generated ({summary.requested} requested)")
