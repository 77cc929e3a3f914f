"""Delivery of generated GIFs to the user."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Protocol

from . import Artifact
from ..utils import file_tools

logger = logging.getLogger(__name__)

DEFAULT_STAGGER_SECONDS = 0.3


class DeliverySink(Protocol):
    """Receives one file per call; what happens to it is up to the sink."""

    def deliver(self, data: bytes, filename: str) -> None: ...


class DirectorySink:
    """Writes deliveries into a directory without overwriting earlier files."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self.written: list[Path] = []

    def deliver(self, data: bytes, filename: str) -> None:
        file_tools.ensure_directory(self.directory)
        target = file_tools.unique_path(self.directory, filename)
        target.write_bytes(data)
        self.written.append(target)
        logger.info("Wrote %s", target)


class MemorySink:
    """Collects deliveries in memory."""

    def __init__(self) -> None:
        self.deliveries: list[tuple[str, bytes]] = []

    def deliver(self, data: bytes, filename: str) -> None:
        self.deliveries.append((filename, data))


def export_one(artifact: Artifact, sink: DeliverySink) -> str:
    """Hand a single artifact to ``sink`` under its derived name."""

    sink.deliver(artifact.encoded_bytes, artifact.derived_name)
    return artifact.derived_name


async def export_batch(
    artifacts: Iterable[Artifact],
    sink: DeliverySink,
    stagger_seconds: float = DEFAULT_STAGGER_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[str]:
    """Deliver every artifact, pausing between deliveries.

    The pause only exists to stay under host limits on rapid successive
    downloads; it is not applied before the first delivery.
    """

    delivered: list[str] = []
    for index, artifact in enumerate(artifacts):
        if index and stagger_seconds > 0:
            await sleep(stagger_seconds)
        delivered.append(export_one(artifact, sink))
    logger.info("Exported %s animation(s)", len(delivered))
    return delivered
