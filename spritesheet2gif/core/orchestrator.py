"""Sequential batch generation of GIFs from registered sprite sheets."""

from __future__ import annotations

import enum
import logging
from typing import Callable, Optional, Sequence

from . import Artifact, BatchSummary, ItemFailure, ProgressEvent, Settings, Source
from .errors import (
    BatchInProgressError,
    EmptyBatchError,
    EncodingError,
    InvalidGridError,
    NoArtifactsProducedError,
)
from .gif_encoder import FrameEncoder, frame_delay_ms, loop_count_for
from .registry import ArtifactRegistry, SourceRegistry
from .tile_extractor import extract_tiles, plan_grid
from ..utils import file_tools

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]
ItemErrorCallback = Callable[[ItemFailure], None]


class BatchState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"


class BatchOrchestrator:
    """Runs one batch at a time, one source at a time.

    Each item is sliced and then handed to the encoder; the encode call is the
    only suspension point and nothing else starts while it is pending. Failures
    of single items are recorded and the loop moves on. Cancellation is not
    supported: a started batch processes every requested id.
    """

    def __init__(
        self,
        sources: SourceRegistry,
        artifacts: ArtifactRegistry,
        encoder: FrameEncoder,
    ) -> None:
        self.sources = sources
        self.artifacts = artifacts
        self.encoder = encoder
        self._state = BatchState.IDLE
        self._listeners: list[ProgressCallback] = []

    @property
    def state(self) -> BatchState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is BatchState.RUNNING

    def add_listener(self, callback: ProgressCallback) -> None:
        """Subscribe to progress events of every batch."""

        self._listeners.append(callback)

    async def request_batch(
        self,
        ids: Sequence[str],
        settings: Settings,
        progress: Optional[ProgressCallback] = None,
        on_item_error: Optional[ItemErrorCallback] = None,
        clear_previous: bool = True,
    ) -> BatchSummary:
        """Generate one artifact per id, in the given order, using ``settings``.

        ``settings`` is the snapshot taken when the request was made; it is
        used unchanged for every item. Raises :class:`EmptyBatchError` for an
        empty request and :class:`NoArtifactsProducedError` when nothing was
        produced.
        """

        if not ids:
            raise EmptyBatchError("No sources selected for generation")
        if self.is_running:
            raise BatchInProgressError("A batch is already running")

        requested = list(ids)
        total = len(requested)
        summary = BatchSummary(requested=total)

        if clear_previous:
            self.artifacts.clear()

        self._state = BatchState.RUNNING
        logger.info(
            "Starting batch of %s (grid %sx%s, %s fps, quality %s)",
            total,
            settings.columns,
            settings.rows,
            settings.frames_per_second,
            settings.quality,
        )
        completed = 0
        try:
            for source_id in requested:
                source = self.sources.get(source_id)
                if source is None:
                    logger.debug("Skipping %s: source no longer registered", source_id)
                    summary.skipped.append(source_id)
                    continue

                self._emit(progress, ProgressEvent(completed, total, f"Processing: {source.display_name}", source_id))
                try:
                    artifact = await self._generate_one(source, settings)
                except (InvalidGridError, EncodingError) as exc:
                    self._record_failure(summary, source, str(exc), on_item_error)
                    continue
                except Exception as exc:
                    logger.exception("Unexpected failure while generating %s", source.display_name)
                    self._record_failure(summary, source, str(exc) or type(exc).__name__, on_item_error)
                    continue

                self.artifacts.put(source_id, artifact)
                summary.succeeded.append(source_id)
                completed += 1
                self._emit(progress, ProgressEvent(completed, total, f"Finished: {source.display_name}", source_id))
        finally:
            self._state = BatchState.IDLE

        if self.artifacts.count() == 0:
            logger.warning("Batch finished without artifacts (%s requested)", total)
            raise NoArtifactsProducedError(summary)

        logger.info("%s", summary.message)
        return summary

    async def _generate_one(self, source: Source, settings: Settings) -> Artifact:
        layout = plan_grid(source.pixel_width, source.pixel_height, settings.columns, settings.rows)
        frames = extract_tiles(
            source.image,
            settings.columns,
            settings.rows,
            settings.transparent_background,
            tile_width=layout.tile_width,
            tile_height=layout.tile_height,
        )
        encoded = await self.encoder.encode(
            frames,
            frame_delay_ms(settings.frames_per_second),
            loop_count_for(settings.loop_forever),
            settings.quality,
            layout.tile_width,
            layout.tile_height,
        )
        return Artifact(
            source_id=source.id,
            encoded_bytes=encoded,
            derived_name=file_tools.derive_artifact_name(source.display_name),
            tile_width=layout.tile_width,
            tile_height=layout.tile_height,
            frame_count=settings.columns * settings.rows,
        )

    def _record_failure(
        self,
        summary: BatchSummary,
        source: Source,
        reason: str,
        on_item_error: Optional[ItemErrorCallback],
    ) -> None:
        failure = ItemFailure(source_id=source.id, source_name=source.display_name, reason=reason)
        summary.failures.append(failure)
        logger.warning("%s", failure)
        if on_item_error is not None:
            on_item_error(failure)

    def _emit(self, progress: Optional[ProgressCallback], event: ProgressEvent) -> None:
        if progress is not None:
            progress(event)
        for listener in self._listeners:
            listener(event)
