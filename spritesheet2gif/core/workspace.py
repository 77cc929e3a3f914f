"""Owned bundle of registries, settings and orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from . import Settings
from .errors import DecodeError
from .gif_encoder import FrameEncoder, PillowGifEncoder
from .image_loader import decode_image
from .orchestrator import BatchOrchestrator
from .registry import ArtifactRegistry, SourceRegistry
from .settings_store import SettingsStore
from ..utils import file_tools

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    """Outcome of ingesting several files at once."""

    added: list[str] = field(default_factory=list)
    errors: list[DecodeError] = field(default_factory=list)


class Workspace:
    """Everything one user session needs; create a fresh one per app or test."""

    def __init__(self, encoder: Optional[FrameEncoder] = None, settings: Optional[Settings] = None) -> None:
        self.artifacts = ArtifactRegistry()
        self.sources = SourceRegistry(self.artifacts)
        self.settings = SettingsStore(settings)
        self.orchestrator = BatchOrchestrator(self.sources, self.artifacts, encoder or PillowGifEncoder())

    def ingest(self, raw: bytes, filename: Optional[str]) -> str:
        """Decode one uploaded file and register it; raises DecodeError."""

        name = file_tools.display_name_for(filename)
        decoded = decode_image(raw, name)
        return self.sources.add(decoded.image, name, byte_size=len(raw))

    def ingest_many(self, files: list[tuple[Optional[str], bytes]]) -> UploadResult:
        """Register every decodable file; a bad file never blocks the others."""

        result = UploadResult()
        for filename, raw in files:
            try:
                result.added.append(self.ingest(raw, filename))
            except DecodeError as exc:
                logger.warning("%s", exc)
                result.errors.append(exc)
        return result
