import dataclasses

import pytest

from spritesheet2gif.core import Settings
from spritesheet2gif.core.errors import SettingsRangeError
from spritesheet2gif.core.settings_store import SettingsStore


def test_defaults():
    settings = SettingsStore().snapshot()
    assert settings == Settings(
        columns=4,
        rows=4,
        frames_per_second=10,
        quality=10,
        loop_forever=True,
        transparent_background=False,
    )


@pytest.mark.parametrize(
    "field, value",
    [
        ("columns", 0),
        ("columns", 13),
        ("rows", 0),
        ("frames_per_second", 31),
        ("quality", 0),
        ("quality", 21),
        ("columns", True),
        ("columns", "4"),
        ("loop_forever", 1),
    ],
)
def test_out_of_range_values_are_rejected(field, value):
    store = SettingsStore()
    before = store.snapshot()
    with pytest.raises(SettingsRangeError):
        store.set(field, value)
    assert store.snapshot() == before


def test_update_is_all_or_nothing():
    store = SettingsStore()
    with pytest.raises(SettingsRangeError):
        store.update(columns=6, rows=0)
    assert store.snapshot().columns == 4


def test_unknown_field_is_rejected():
    with pytest.raises(SettingsRangeError):
        SettingsStore().update(padding=2)


def test_bounds_are_inclusive():
    store = SettingsStore()
    store.update(columns=12, rows=1, frames_per_second=30, quality=1)
    assert store.snapshot().columns == 12
    assert store.snapshot().frames_per_second == 30


def test_snapshot_is_not_affected_by_later_edits():
    store = SettingsStore()
    snapshot = store.snapshot()
    store.update(columns=2, transparent_background=True)
    assert snapshot.columns == 4
    assert snapshot.transparent_background is False
    with pytest.raises(dataclasses.FrozenInstanceError):
        snapshot.columns = 8


def test_invalid_initial_settings_are_rejected():
    with pytest.raises(SettingsRangeError):
        SettingsStore(Settings(columns=0))
