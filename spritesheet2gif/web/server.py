"""FastAPI surface for sprite sheet to GIF conversion."""

from __future__ import annotations

import io
import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional
from urllib.parse import quote

from fastapi import FastAPI, File, HTTPException, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, StrictBool, StrictInt

from ..core import Artifact, BatchSummary, ItemFailure, ProgressEvent, Source
from ..core.errors import (
    BatchInProgressError,
    EmptyBatchError,
    NoArtifactsProducedError,
    SettingsRangeError,
)
from ..core.exporter import DirectorySink, MemorySink, export_batch, export_one
from ..core.gif_encoder import FrameEncoder
from ..core.grid_preview import render_grid_preview
from ..core.workspace import Workspace
from ..utils import file_tools, validators

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parents[2]
EXPORT_DIR = Path(os.environ.get("S2G_EXPORT_DIR", str(BASE_DIR / "artifacts" / "exports")))
MAX_UPLOAD_BYTES = int(os.environ.get("S2G_MAX_UPLOAD_MB", "50")) * 1024 * 1024
EXPORT_STAGGER_SECONDS = int(os.environ.get("S2G_EXPORT_STAGGER_MS", "300")) / 1000
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("S2G_ALLOWED_ORIGINS", "http://localhost:8000").split(",")
    if origin.strip()
]


class SettingsUpdate(BaseModel):
    """Partial settings payload; omitted fields keep their current value."""

    model_config = ConfigDict(extra="forbid")

    columns: Optional[StrictInt] = None
    rows: Optional[StrictInt] = None
    frames_per_second: Optional[StrictInt] = None
    quality: Optional[StrictInt] = None
    loop_forever: Optional[StrictBool] = None
    transparent_background: Optional[StrictBool] = None


class GenerateRequest(BaseModel):
    """Which sources to generate; explicit ids win over the scope."""

    scope: Literal["selected", "all"] = "selected"
    ids: Optional[list[str]] = None


class SelectionRequest(BaseModel):
    selected: bool


def _source_payload(source: Source) -> dict[str, Any]:
    return {
        "id": source.id,
        "name": source.display_name,
        "width": source.pixel_width,
        "height": source.pixel_height,
        "size": source.byte_size,
        "size_label": file_tools.format_file_size(source.byte_size),
        "selected": source.selected,
    }


def _artifact_payload(artifact: Artifact, token: Optional[str]) -> dict[str, Any]:
    return {
        "source_id": artifact.source_id,
        "name": artifact.derived_name,
        "tile_width": artifact.tile_width,
        "tile_height": artifact.tile_height,
        "frame_count": artifact.frame_count,
        "size": artifact.byte_size,
        "url": f"/media/{token}" if token else None,
        "download_url": f"/api/artifacts/{artifact.source_id}/download",
    }


def _failure_payload(failure: ItemFailure) -> dict[str, str]:
    return {"source_id": failure.source_id, "name": failure.source_name, "reason": failure.reason}


def _summary_payload(summary: BatchSummary) -> dict[str, Any]:
    return {
        "requested": summary.requested,
        "produced": summary.produced,
        "succeeded": summary.succeeded,
        "skipped": summary.skipped,
        "failures": [_failure_payload(f) for f in summary.failures],
        "message": summary.message,
    }


def _progress_payload(event: Optional[ProgressEvent]) -> Optional[dict[str, Any]]:
    if event is None:
        return None
    return {
        "completed": event.completed,
        "total": event.total,
        "percent": event.percent,
        "label": event.label,
        "source_id": event.source_id,
    }


def _content_disposition(filename: str, disposition: str = "attachment") -> str:
    fallback = filename.encode("ascii", "replace").decode("ascii").replace("?", "_").replace('"', "_")
    return f"{disposition}; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def _enforce_size_limit(request: Request) -> None:
    """Simple guardrail on upload size based on Content-Length."""

    content_length = request.headers.get("content-length")
    if not content_length:
        return
    try:
        size = int(content_length)
    except ValueError:
        return
    if size > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Upload exceeds limit")


def create_app(
    workspace: Optional[Workspace] = None,
    encoder: Optional[FrameEncoder] = None,
    export_dir: Optional[Path] = None,
    stagger_seconds: Optional[float] = None,
) -> FastAPI:
    app = FastAPI(title="Sprite Sheet to GIF", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    ws = workspace or Workspace(encoder=encoder)
    target_dir = export_dir or EXPORT_DIR
    stagger = EXPORT_STAGGER_SECONDS if stagger_seconds is None else stagger_seconds
    app.state.workspace = ws
    app.state.last_progress = None

    def _remember_progress(event: ProgressEvent) -> None:
        app.state.last_progress = event

    ws.orchestrator.add_listener(_remember_progress)

    def _get_source(source_id: str) -> Source:
        source = ws.sources.get(source_id)
        if source is None:
            raise HTTPException(status_code=404, detail="Source not found")
        return source

    def _get_artifact(source_id: str) -> Artifact:
        artifact = ws.artifacts.get(source_id)
        if artifact is None:
            raise HTTPException(status_code=404, detail="Animation not found")
        return artifact

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/sources")
    async def list_sources() -> dict[str, Any]:
        sources = ws.sources.sources()
        return {
            "sources": [_source_payload(s) for s in sources],
            "count": len(sources),
            "selected": len(ws.sources.selected_ids()),
        }

    @app.post("/api/sources")
    async def upload_sources(request: Request, files: list[UploadFile] = File(...)) -> dict[str, Any]:
        _enforce_size_limit(request)
        batch: list[tuple[Optional[str], bytes]] = []
        rejected: list[dict[str, str]] = []
        for upload in files:
            name = file_tools.display_name_for(upload.filename)
            if not validators.has_image_extension(upload.filename):
                rejected.append({"name": name, "reason": "Unsupported file type"})
                continue
            raw = await upload.read(MAX_UPLOAD_BYTES + 1)
            if len(raw) > MAX_UPLOAD_BYTES:
                rejected.append({"name": name, "reason": "File too large"})
                continue
            batch.append((upload.filename, raw))

        result = ws.ingest_many(batch)
        rejected.extend({"name": err.name, "reason": err.reason or str(err)} for err in result.errors)
        if not result.added and rejected:
            raise HTTPException(status_code=400, detail={"message": "No valid images uploaded", "errors": rejected})
        return {
            "added": [_source_payload(ws.sources.get(source_id)) for source_id in result.added],
            "errors": rejected,
        }

    @app.post("/api/sources/select-all")
    async def select_all(payload: SelectionRequest) -> dict[str, int]:
        ws.sources.select_all(payload.selected)
        return {"selected": len(ws.sources.selected_ids())}

    @app.post("/api/sources/{source_id}/toggle")
    async def toggle_source(source_id: str) -> dict[str, Any]:
        ws.sources.toggle(source_id)
        return _source_payload(_get_source(source_id))

    @app.put("/api/sources/{source_id}/selected")
    async def set_selected(source_id: str, payload: SelectionRequest) -> dict[str, Any]:
        ws.sources.set_selected(source_id, payload.selected)
        return _source_payload(_get_source(source_id))

    @app.delete("/api/sources/{source_id}")
    async def delete_source(source_id: str) -> dict[str, str]:
        if ws.orchestrator.is_running:
            raise HTTPException(status_code=409, detail="Generation in progress")
        if not ws.sources.remove(source_id):
            raise HTTPException(status_code=404, detail="Source not found")
        return {"status": "deleted"}

    @app.delete("/api/sources")
    async def clear_sources() -> dict[str, str]:
        if ws.orchestrator.is_running:
            raise HTTPException(status_code=409, detail="Generation in progress")
        ws.sources.clear()
        return {"status": "cleared"}

    @app.get("/api/sources/{source_id}/preview")
    async def preview_source(source_id: str) -> Response:
        source = _get_source(source_id)
        settings = ws.settings.snapshot()
        preview = render_grid_preview(source.image, settings.columns, settings.rows)
        buffer = io.BytesIO()
        preview.save(buffer, format="PNG")
        return Response(content=buffer.getvalue(), media_type="image/png")

    @app.get("/api/settings")
    async def get_settings() -> dict[str, Any]:
        return ws.settings.as_dict()

    @app.put("/api/settings")
    async def update_settings(payload: SettingsUpdate) -> dict[str, Any]:
        try:
            ws.settings.update(**payload.model_dump(exclude_unset=True, exclude_none=True))
        except SettingsRangeError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return ws.settings.as_dict()

    @app.post("/api/generate")
    async def generate(payload: GenerateRequest) -> dict[str, Any]:
        if payload.ids is not None:
            ids = payload.ids
        else:
            ids = ws.sources.ordered_ids(only_selected=payload.scope == "selected")
        app.state.last_progress = None
        try:
            summary = await ws.orchestrator.request_batch(ids, ws.settings.snapshot())
        except EmptyBatchError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except BatchInProgressError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except NoArtifactsProducedError as exc:
            raise HTTPException(
                status_code=422,
                detail={"message": str(exc), **_summary_payload(exc.summary)},
            ) from exc
        return _summary_payload(summary)

    @app.get("/api/progress")
    async def progress() -> dict[str, Any]:
        return {
            "state": ws.orchestrator.state.value,
            "progress": _progress_payload(app.state.last_progress),
        }

    @app.get("/api/artifacts")
    async def list_artifacts() -> dict[str, Any]:
        artifacts = ws.artifacts.all()
        return {
            "artifacts": [
                _artifact_payload(artifact, ws.artifacts.token_for(source_id))
                for source_id, artifact in artifacts.items()
            ],
            "count": len(artifacts),
        }

    @app.get("/api/artifacts/{source_id}/download")
    async def download_artifact(source_id: str) -> Response:
        sink = MemorySink()
        export_one(_get_artifact(source_id), sink)
        filename, data = sink.deliveries[0]
        return Response(
            content=data,
            media_type="image/gif",
            headers={"Content-Disposition": _content_disposition(filename)},
        )

    @app.get("/media/{token}")
    async def media(token: str) -> Response:
        artifact = ws.artifacts.resolve_token(token)
        if artifact is None:
            raise HTTPException(status_code=404, detail="Not found")
        return Response(content=artifact.encoded_bytes, media_type="image/gif")

    @app.post("/api/export")
    async def export_all() -> dict[str, Any]:
        artifacts = list(ws.artifacts)
        if not artifacts:
            raise HTTPException(status_code=400, detail="No animations to export")
        sink = DirectorySink(target_dir)
        try:
            names = await export_batch(artifacts, sink, stagger_seconds=stagger)
        except OSError as exc:
            logger.exception("Export to %s failed", target_dir)
            raise HTTPException(status_code=500, detail=f"Export failed: {exc}") from exc
        return {"exported": names, "paths": [str(p) for p in sink.written]}

    return app


app = create_app()
