"""Settings store: per-mode timer settings in a locked JSON file."""

from __future__ import annotations

import fcntl
import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "timerdeck"
_SETTINGS_FILE = "settings.json"


class StorageError(Exception):
    """Raised when the settings file cannot be written."""


class SettingsStore:
    """Key/value settings persisted to ``<config_dir>/settings.json``.

    Keys are timer modes (plus ``alerts``).  Every :meth:`save` rewrites the
    whole document under an exclusive lock so concurrent invocations never
    interleave partial writes.
    """

    def __init__(self, config_dir: Path | None = None) -> None:
        self._config_dir: Path = config_dir if config_dir is not None else _DEFAULT_CONFIG_DIR

    @property
    def path(self) -> Path:
        return self._config_dir / _SETTINGS_FILE

    # -- public API ----------------------------------------------------------

    def load(self, key: str, default: Any = None) -> Any:
        """Return the value stored under *key*, or *default*."""
        return self._read().get(key, default)

    def load_all(self) -> dict[str, Any]:
        return self._read()

    def save(self, key: str, value: Any) -> None:
        """Store *value* under *key*.  Raises :class:`StorageError` on I/O failure."""
        data = self._read()
        data[key] = value
        try:
            self._config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                fcntl.flock(f, fcntl.LOCK_EX)
                json.dump(data, f, indent=2, sort_keys=True)
        except OSError as exc:
            raise StorageError(f"could not write {self.path}: {exc}") from exc
        logger.debug("Saved %s settings to %s", key, self.path)

    # -- private helpers -----------------------------------------------------

    def _read(self) -> dict[str, Any]:
        """Load the whole document; a missing or corrupt file reads as empty."""
        path = self.path
        if not path.exists():
            return {}
        try:
            with open(path) as f:
                fcntl.flock(f, fcntl.LOCK_SH)
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring settings file %s: expected an object", path)
            return {}
        return data
