"""Bounds-checked holder for the current settings."""

from __future__ import annotations

import logging
from dataclasses import asdict, fields, replace
from typing import Any, Optional

from . import Settings
from .errors import SettingsRangeError
from ..utils import validators

logger = logging.getLogger(__name__)

SETTING_NAMES = tuple(f.name for f in fields(Settings))


class SettingsStore:
    """Keeps the live settings; batches take immutable snapshots of it."""

    def __init__(self, initial: Optional[Settings] = None) -> None:
        current = initial or Settings()
        for name, value in asdict(current).items():
            validators.validate_setting(name, value)
        self._current = current

    def snapshot(self) -> Settings:
        """Return the current settings. The object is frozen, so it is safe to hold."""

        return self._current

    def update(self, **changes: Any) -> Settings:
        """Apply several changes at once; nothing changes if any value is rejected."""

        for name, value in changes.items():
            if name not in SETTING_NAMES:
                raise SettingsRangeError(name, value)
            validators.validate_setting(name, value)
        if changes:
            self._current = replace(self._current, **changes)
            logger.debug("Settings updated: %s", changes)
        return self._current

    def set(self, name: str, value: Any) -> Settings:
        return self.update(**{name: value})

    def as_dict(self) -> dict[str, Any]:
        return asdict(self._current)
