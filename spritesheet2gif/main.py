"""Entry point for the sprite sheet to GIF web service."""

from __future__ import annotations

import logging
import os
import sys

import uvicorn

HOST = os.environ.get("S2G_HOST", "127.0.0.1")
PORT = int(os.environ.get("S2G_PORT", "8000"))


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="[%(levelname)s] %(name)s: %(message)s",
    )


def run() -> int:
    """Serve the API with uvicorn."""

    configure_logging()
    from .web.server import create_app

    uvicorn.run(create_app(), host=HOST, port=PORT)
    return 0


if __name__ == "__main__":
    sys.exit(run())
