import asyncio

import pytest
from PIL import Image

from spritesheet2gif.core import Settings
from spritesheet2gif.core.errors import (
    BatchInProgressError,
    EmptyBatchError,
    EncodingError,
    NoArtifactsProducedError,
)
from spritesheet2gif.core.orchestrator import BatchState
from spritesheet2gif.core.workspace import Workspace


class RecordingEncoder:
    """Returns fake GIF bytes; fails on the call numbers in ``fail_on``."""

    def __init__(self, fail_on=(), during_encode=None):
        self.fail_on = set(fail_on)
        self.during_encode = during_encode
        self.calls = []

    async def encode(self, frames, frame_delay_ms, loop_count, quality, canvas_width, canvas_height):
        call = len(self.calls)
        self.calls.append(
            {
                "frames": len(frames),
                "delay": frame_delay_ms,
                "loop": loop_count,
                "quality": quality,
                "size": (canvas_width, canvas_height),
            }
        )
        if self.during_encode is not None:
            await self.during_encode(call)
        await asyncio.sleep(0)
        if call in self.fail_on:
            raise EncodingError(f"encoder gave up on call {call}")
        return b"GIF89a" + bytes([call])


def _workspace(encoder, names=("a.png", "b.png", "c.png"), size=(64, 32)):
    workspace = Workspace(encoder=encoder)
    ids = [workspace.sources.add(Image.new("RGBA", size, (255, 0, 0, 255)), name) for name in names]
    return workspace, ids


def _run(workspace, ids, settings=None, **kwargs):
    settings = settings or workspace.settings.snapshot()
    return asyncio.run(workspace.orchestrator.request_batch(ids, settings, **kwargs))


def test_batch_produces_one_artifact_per_source():
    encoder = RecordingEncoder()
    workspace, ids = _workspace(encoder)
    summary = _run(workspace, ids)

    assert summary.produced == 3
    assert summary.succeeded == ids
    assert summary.message == "Generated 3 of 3 animations"
    artifact = workspace.artifacts.get(ids[0])
    assert artifact.derived_name == "a.gif"
    assert (artifact.tile_width, artifact.tile_height) == (16, 8)
    assert artifact.frame_count == 16
    assert encoder.calls[0] == {"frames": 16, "delay": 100, "loop": 0, "quality": 10, "size": (16, 8)}
    assert workspace.orchestrator.state is BatchState.IDLE


def test_items_run_in_requested_order():
    encoder = RecordingEncoder()
    workspace, ids = _workspace(encoder)
    requested = [ids[2], ids[0], ids[1]]
    summary = _run(workspace, requested)
    assert summary.succeeded == requested
    assert [workspace.artifacts.get(i).encoded_bytes[-1] for i in requested] == [0, 1, 2]


def test_progress_is_reported_before_and_after_each_item():
    workspace, ids = _workspace(RecordingEncoder(), names=("a.png", "b.png"))
    events = []
    _run(workspace, ids, progress=events.append)
    assert [(e.completed, e.total, e.label) for e in events] == [
        (0, 2, "Processing: a.png"),
        (1, 2, "Finished: a.png"),
        (1, 2, "Processing: b.png"),
        (2, 2, "Finished: b.png"),
    ]
    assert events[-1].percent == 100


def test_listener_receives_progress_of_every_batch():
    workspace, ids = _workspace(RecordingEncoder(), names=("a.png",))
    seen = []
    workspace.orchestrator.add_listener(seen.append)
    _run(workspace, ids)
    _run(workspace, ids)
    assert len(seen) == 4


def test_one_failing_item_does_not_abort_the_batch():
    workspace, ids = _workspace(RecordingEncoder(fail_on={1}))
    errors = []
    summary = _run(workspace, ids, on_item_error=errors.append)

    assert summary.produced == 2
    assert workspace.artifacts.count() == 2
    assert workspace.artifacts.get(ids[1]) is None
    assert len(summary.failures) == 1
    assert errors == summary.failures
    assert errors[0].source_name == "b.png"
    assert "encoder gave up" in errors[0].reason


def test_grid_larger_than_source_is_an_item_failure():
    workspace, ids = _workspace(RecordingEncoder(), names=("big.png",))
    tiny = workspace.sources.add(Image.new("RGBA", (2, 2)), "tiny.png")
    summary = _run(workspace, [ids[0], tiny])
    assert summary.succeeded == [ids[0]]
    assert summary.failures[0].source_name == "tiny.png"


def test_unexpected_encoder_exception_is_contained():
    class BrokenEncoder(RecordingEncoder):
        async def encode(self, *args):
            if not self.calls:
                self.calls.append("boom")
                raise RuntimeError("boom")
            return await super().encode(*args)

    workspace, ids = _workspace(BrokenEncoder(), names=("a.png", "b.png"))
    summary = _run(workspace, ids)
    assert summary.succeeded == [ids[1]]
    assert summary.failures[0].reason == "boom"


def test_every_item_failing_raises_no_artifacts():
    workspace, ids = _workspace(RecordingEncoder(fail_on={0, 1, 2}))
    with pytest.raises(NoArtifactsProducedError) as excinfo:
        _run(workspace, ids)
    assert excinfo.value.summary.requested == 3
    assert len(excinfo.value.summary.failures) == 3
    assert workspace.orchestrator.state is BatchState.IDLE


def test_empty_request_is_rejected_before_anything_changes():
    workspace, ids = _workspace(RecordingEncoder(), names=("a.png",))
    _run(workspace, ids)
    states = []
    workspace.orchestrator.add_listener(lambda event: states.append(workspace.orchestrator.state))

    with pytest.raises(EmptyBatchError):
        _run(workspace, [])
    assert workspace.artifacts.count() == 1
    assert states == []
    assert workspace.orchestrator.state is BatchState.IDLE


def test_source_removed_before_its_turn_is_skipped():
    workspace = None
    ids = []

    async def remove_second(call):
        if call == 0:
            workspace.sources.remove(ids[1])

    workspace, ids = _workspace(RecordingEncoder(during_encode=remove_second), names=("a.png", "b.png"))
    summary = _run(workspace, ids)
    assert summary.succeeded == [ids[0]]
    assert summary.skipped == [ids[1]]
    assert workspace.artifacts.count() == 1


def test_all_sources_missing_counts_as_no_artifacts():
    workspace, _ = _workspace(RecordingEncoder())
    with pytest.raises(NoArtifactsProducedError):
        _run(workspace, ["img_gone"])


def test_regenerating_keeps_a_single_artifact_per_source():
    workspace, ids = _workspace(RecordingEncoder(), names=("a.png", "b.png"))
    _run(workspace, [ids[0], ids[0], ids[0]])
    assert workspace.artifacts.count() == 1

    for _ in range(3):
        _run(workspace, ids, clear_previous=False)
    assert workspace.artifacts.count() == 2


def test_new_batch_clears_previous_results():
    workspace, ids = _workspace(RecordingEncoder(), names=("a.png", "b.png"))
    _run(workspace, [ids[0]])
    _run(workspace, [ids[1]])
    assert set(workspace.artifacts.all()) == {ids[1]}


def test_settings_edits_during_a_batch_do_not_leak_into_it():
    workspace = None

    async def change_settings(call):
        if call == 0:
            workspace.settings.update(columns=2, rows=1, frames_per_second=1)

    encoder = RecordingEncoder(during_encode=change_settings)
    workspace, ids = _workspace(encoder, names=("a.png", "b.png"))
    _run(workspace, ids, settings=workspace.settings.snapshot())

    assert [call["size"] for call in encoder.calls] == [(16, 8), (16, 8)]
    assert [call["delay"] for call in encoder.calls] == [100, 100]
    assert workspace.artifacts.get(ids[1]).frame_count == 16
    assert workspace.settings.snapshot().columns == 2


def test_second_request_while_running_is_refused():
    workspace = None
    ids = []
    refused = []

    async def nested_request(call):
        assert workspace.orchestrator.state is BatchState.RUNNING
        try:
            await workspace.orchestrator.request_batch(ids, Settings())
        except BatchInProgressError as exc:
            refused.append(exc)

    workspace, ids = _workspace(RecordingEncoder(during_encode=nested_request), names=("a.png",))
    _run(workspace, ids)
    assert len(refused) == 1


def test_snapshot_settings_drive_encoder_arguments():
    encoder = RecordingEncoder()
    workspace, ids = _workspace(encoder, names=("a.png",))
    settings = Settings(columns=2, rows=2, frames_per_second=25, quality=3, loop_forever=False)
    _run(workspace, ids, settings=settings)
    assert encoder.calls[0] == {"frames": 4, "delay": 40, "loop": 1, "quality": 3, "size": (32, 16)}


def test_real_encoder_end_to_end():
    workspace = Workspace()
    sheet = Image.new("RGBA", (40, 20), (0, 0, 0, 255))
    for index in range(4):
        sheet.paste((index * 60, 0, 255 - index * 60, 255), (index * 10, 0, index * 10 + 10, 20))
    source_id = workspace.sources.add(sheet, "strip.png")
    settings = Settings(columns=4, rows=1)
    summary = asyncio.run(workspace.orchestrator.request_batch([source_id], settings))
    assert summary.produced == 1
    artifact = workspace.artifacts.get(source_id)
    assert artifact.encoded_bytes.startswith(b"GIF89a")
    assert (artifact.tile_width, artifact.tile_height, artifact.frame_count) == (10, 20, 4)
