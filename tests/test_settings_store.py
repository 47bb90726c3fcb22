"""Tests for the JSON settings store."""

import json
import logging
from pathlib import Path

import pytest

from timerdeck.core.pomodoro import PomodoroTimer
from timerdeck.core.settings_store import SettingsStore, StorageError


def _read(config_dir: Path) -> dict:
    """Read and return the settings.json content as a dict."""
    return json.loads((config_dir / "settings.json").read_text())


class TestSettingsStoreLoad:
    """load() returns stored values or the default."""

    def test_missing_file_returns_default(self, tmp_path: Path) -> None:
        store = SettingsStore(config_dir=tmp_path)
        assert store.load("countdown") is None
        assert store.load("alerts", True) is True

    def test_corrupt_file_reads_as_empty(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        (tmp_path / "settings.json").write_text("{not json")
        store = SettingsStore(config_dir=tmp_path)

        with caplog.at_level(logging.WARNING, logger="timerdeck.core.settings_store"):
            assert store.load("countdown", {"x": 1}) == {"x": 1}
        assert "Ignoring unreadable settings file" in caplog.text

    def test_non_object_document_reads_as_empty(self, tmp_path: Path) -> None:
        (tmp_path / "settings.json").write_text("[1, 2, 3]")
        assert SettingsStore(config_dir=tmp_path).load_all() == {}


class TestSettingsStoreSave:
    """save() rewrites the document, keeping other keys."""

    def test_save_then_load(self, tmp_path: Path) -> None:
        store = SettingsStore(config_dir=tmp_path)
        store.save("countdown", {"settings": {"duration": 90}})
        assert store.load("countdown") == {"settings": {"duration": 90}}

    def test_save_keeps_other_keys(self, tmp_path: Path) -> None:
        store = SettingsStore(config_dir=tmp_path)
        store.save("alerts", False)
        store.save("interval", {"settings": {"total_rounds": 3}})
        assert _read(tmp_path) == {
            "alerts": False,
            "interval": {"settings": {"total_rounds": 3}},
        }

    def test_save_creates_config_dir(self, tmp_path: Path) -> None:
        config_dir = tmp_path / "nested" / "timerdeck"
        SettingsStore(config_dir=config_dir).save("alerts", True)
        assert _read(config_dir) == {"alerts": True}

    def test_unwritable_location_raises_storage_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = SettingsStore(config_dir=blocker)
        with pytest.raises(StorageError):
            store.save("alerts", True)


class TestSettingsStoreWithTimer:
    """A timer's on_change callback can write straight into the store."""

    def test_pomodoro_count_is_persisted(self, tmp_path: Path) -> None:
        store = SettingsStore(config_dir=tmp_path)
        timer = PomodoroTimer.restore(store.load("pomodoro"), on_change=store.save)

        timer.skip(now=0)

        saved = store.load("pomodoro")
        assert saved["completed_count"] == 1
        restored = PomodoroTimer.restore(saved)
        assert restored.snapshot(now=0).completed_count == 1
