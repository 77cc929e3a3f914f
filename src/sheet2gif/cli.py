"""Command-line entry point for sprite-sheet-to-GIF batches."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from spritesheet2gif.core import ItemFailure, ProgressEvent
from spritesheet2gif.core.errors import DecodeError, NoArtifactsProducedError, SettingsRangeError
from spritesheet2gif.core.exporter import DirectorySink, export_batch
from spritesheet2gif.core.workspace import Workspace
from spritesheet2gif.main import configure_logging

logger = logging.getLogger("sheet2gif")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sheet2gif",
        description="Slice sprite sheets into equal tiles and write one animated GIF per sheet.",
    )
    parser.add_argument("inputs", type=Path, nargs="+", help="Sprite sheet images (PNG, JPEG, WebP, GIF)")
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory the GIFs are written to (default: current directory)",
    )
    parser.add_argument("--columns", type=int, default=4, help="Tiles per row, 1-12 (default: 4)")
    parser.add_argument("--rows", type=int, default=4, help="Tile rows, 1-12 (default: 4)")
    parser.add_argument("--fps", type=int, default=10, help="Frames per second, 1-30 (default: 10)")
    parser.add_argument(
        "--quality",
        type=int,
        default=10,
        help="1-20, lower keeps more colours (default: 10)",
    )
    parser.add_argument("--no-loop", action="store_true", help="Play the animation once instead of looping")
    parser.add_argument("--transparent", action="store_true", help="Keep transparent pixels instead of white")
    parser.add_argument(
        "--stagger-ms",
        type=int,
        default=0,
        help="Pause between written files in milliseconds (default: 0)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate inputs and settings without writing GIFs",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _print_progress(event: ProgressEvent) -> None:
    print(f"[{event.completed}/{event.total} {event.percent:3d}%] {event.label}")


def _print_failure(failure: ItemFailure) -> None:
    print(f"  error: {failure}", file=sys.stderr)


async def _run(workspace: Workspace, output_dir: Path, stagger_seconds: float) -> int:
    ids = workspace.sources.ordered_ids()
    try:
        summary = await workspace.orchestrator.request_batch(
            ids,
            workspace.settings.snapshot(),
            progress=_print_progress,
            on_item_error=_print_failure,
        )
    except NoArtifactsProducedError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    sink = DirectorySink(output_dir)
    await export_batch(workspace.artifacts, sink, stagger_seconds=stagger_seconds)
    print(f"{summary.message}; written to {output_dir}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    workspace = Workspace()
    try:
        workspace.settings.update(
            columns=args.columns,
            rows=args.rows,
            frames_per_second=args.fps,
            quality=args.quality,
            loop_forever=not args.no_loop,
            transparent_background=args.transparent,
        )
    except SettingsRangeError as exc:
        parser.error(str(exc))

    if args.dry_run:
        settings = workspace.settings.snapshot()
        print(f"Would slice {len(args.inputs)} file(s) into {settings.columns}x{settings.rows} tiles")
        return 0

    for path in args.inputs:
        try:
            raw = path.read_bytes()
        except OSError as exc:
            logger.error("Cannot read %s: %s", path, exc)
            continue
        try:
            workspace.ingest(raw, path.name)
        except DecodeError as exc:
            logger.error("%s", exc)

    if not len(workspace.sources):
        print("No readable images given.", file=sys.stderr)
        return 1

    return asyncio.run(_run(workspace, args.output_dir, args.stagger_ms / 1000))


if __name__ == "__main__":
    sys.exit(main())
