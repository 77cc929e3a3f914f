"""In-memory registries for uploaded sources and generated artifacts."""

from __future__ import annotations

import logging
import secrets
import uuid
from typing import Iterator, Optional

from PIL import Image

from . import Artifact, Source

logger = logging.getLogger(__name__)


class ArtifactRegistry:
    """Holds at most one artifact per source id.

    Every stored artifact gets a media token (a revocable reference used for
    inline URLs). Replacing or removing the artifact revokes its token.
    """

    def __init__(self) -> None:
        self._artifacts: dict[str, Artifact] = {}
        self._tokens: dict[str, str] = {}
        self._tokens_by_source: dict[str, str] = {}

    def put(self, source_id: str, artifact: Artifact) -> str:
        """Insert or replace the artifact for ``source_id`` and return its token."""

        if artifact.source_id != source_id:
            raise ValueError(f"Artifact belongs to {artifact.source_id}, not {source_id}")
        replaced = source_id in self._artifacts
        self._release(source_id)
        token = secrets.token_urlsafe(16)
        self._artifacts[source_id] = artifact
        self._tokens[token] = source_id
        self._tokens_by_source[source_id] = token
        if replaced:
            logger.debug("Replaced artifact for %s", source_id)
        return token

    def get(self, source_id: str) -> Optional[Artifact]:
        return self._artifacts.get(source_id)

    def all(self) -> dict[str, Artifact]:
        return dict(self._artifacts)

    def count(self) -> int:
        return len(self._artifacts)

    def remove(self, source_id: str) -> bool:
        removed = self._release(source_id)
        if removed:
            logger.debug("Removed artifact for %s", source_id)
        return removed

    def clear(self) -> None:
        self._artifacts.clear()
        self._tokens.clear()
        self._tokens_by_source.clear()

    def token_for(self, source_id: str) -> Optional[str]:
        return self._tokens_by_source.get(source_id)

    def resolve_token(self, token: str) -> Optional[Artifact]:
        source_id = self._tokens.get(token)
        if source_id is None:
            return None
        return self._artifacts.get(source_id)

    def _release(self, source_id: str) -> bool:
        token = self._tokens_by_source.pop(source_id, None)
        if token is not None:
            self._tokens.pop(token, None)
        return self._artifacts.pop(source_id, None) is not None

    def __len__(self) -> int:
        return len(self._artifacts)

    def __iter__(self) -> Iterator[Artifact]:
        return iter(list(self._artifacts.values()))


class SourceRegistry:
    """Uploaded sprite sheets in upload order, with their selection flags."""

    def __init__(self, artifacts: ArtifactRegistry) -> None:
        self._sources: dict[str, Source] = {}
        self._artifacts = artifacts

    def add(self, image: Image.Image, display_name: str, byte_size: int = 0) -> str:
        """Register a decoded bitmap; new sources start out selected."""

        source_id = self._new_id()
        self._sources[source_id] = Source(
            id=source_id,
            display_name=display_name,
            image=image,
            pixel_width=image.width,
            pixel_height=image.height,
            byte_size=byte_size,
            selected=True,
        )
        logger.debug("Added source %s (%s, %sx%s)", source_id, display_name, image.width, image.height)
        return source_id

    def get(self, source_id: str) -> Optional[Source]:
        return self._sources.get(source_id)

    def toggle(self, source_id: str) -> None:
        source = self._sources.get(source_id)
        if source is not None:
            source.selected = not source.selected

    def set_selected(self, source_id: str, selected: bool) -> None:
        source = self._sources.get(source_id)
        if source is not None:
            source.selected = bool(selected)

    def select_all(self, selected: bool) -> None:
        for source in self._sources.values():
            source.selected = bool(selected)

    def remove(self, source_id: str) -> bool:
        """Drop a source and its artifact; unknown ids are ignored."""

        source = self._sources.pop(source_id, None)
        self._artifacts.remove(source_id)
        if source is not None:
            logger.debug("Removed source %s (%s)", source_id, source.display_name)
        return source is not None

    def clear(self) -> None:
        for source_id in list(self._sources):
            self._artifacts.remove(source_id)
        self._sources.clear()

    def selected_ids(self) -> set[str]:
        return {source_id for source_id, source in self._sources.items() if source.selected}

    def all_ids(self) -> set[str]:
        return set(self._sources)

    def ordered_ids(self, only_selected: bool = False) -> list[str]:
        """Ids in upload order, optionally restricted to selected sources."""

        return [
            source_id
            for source_id, source in self._sources.items()
            if source.selected or not only_selected
        ]

    def sources(self) -> list[Source]:
        return list(self._sources.values())

    def _new_id(self) -> str:
        source_id = f"img_{uuid.uuid4().hex}"
        while source_id in self._sources:
            source_id = f"img_{uuid.uuid4().hex}"
        return source_id

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources
