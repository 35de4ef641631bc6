"""Shared fixtures: temporary playlist configs and a loguru capture sink."""

from __future__ import annotations

import os

import pytest
from loguru import logger

from content_playlist.config import Config
from content_playlist.core import path_resolver
from content_playlist.core.playlist import Playlist
from content_playlist.models.entry import PlaylistEntry
from content_playlist.models.playlist_config import PlaylistConfig


@pytest.fixture()
def playlist_dir(tmp_path):
    """Canonical temporary directory (tmp_path may sit behind a symlink)."""
    return os.path.realpath(tmp_path)


@pytest.fixture()
def make_config(playlist_dir):
    """Factory for a :class:`PlaylistConfig` pointing into the temp dir."""

    def _make(name: str = "test.lpl", capacity: int = 100, **kwargs) -> PlaylistConfig:
        base = kwargs.pop("base_content_directory", "")
        config = PlaylistConfig(capacity=capacity, **kwargs)
        config.set_path(os.path.join(playlist_dir, name))
        if base:
            config.set_base_content_directory(base)
        return config

    return _make


@pytest.fixture()
def make_playlist(make_config):
    def _make(**kwargs) -> Playlist:
        return Playlist(make_config(**kwargs))

    return _make


@pytest.fixture()
def entry():
    """Factory for entries with a real-looking, nonexistent content path."""

    def _make(path: str = "/roms/game.sfc", core_path: str = "/cores/snes9x.so", **kwargs):
        return PlaylistEntry(path=path, core_path=core_path, **kwargs)

    return _make


@pytest.fixture()
def case_sensitive_fs(monkeypatch):
    monkeypatch.setattr(path_resolver, "CASE_INSENSITIVE_FS", False)


@pytest.fixture()
def case_insensitive_fs(monkeypatch):
    monkeypatch.setattr(path_resolver, "CASE_INSENSITIVE_FS", True)


@pytest.fixture()
def log_records():
    """Collect loguru records emitted during the test."""
    records: list[dict] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture()
def config(tmp_path):
    """Fresh :class:`Config` singleton backed by a temp settings file."""
    Config.reset()
    cfg = Config(tmp_path / "settings.json")
    yield cfg
    Config.reset()
