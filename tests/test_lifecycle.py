"""Tests for loading playlists from disk and the playlist cache."""

from __future__ import annotations

import json
import os

from content_playlist.core.file_stream import RZIP_MAGIC
from content_playlist.core.lifecycle import PlaylistCache, init_playlist, read_playlist_file
from content_playlist.core.playlist import Playlist
from content_playlist.models.entry import PlaylistEntry


def _save(make_config, **kwargs) -> str:
    """Write a two-entry playlist with the given config and return its path."""
    config = make_config(**kwargs)
    playlist = Playlist(config)
    playlist.push(PlaylistEntry(path="/old/roms/a.sfc", core_path="DETECT", label="A"))
    playlist.push(PlaylistEntry(
        path="/old/roms/b.sfc",
        core_path="DETECT",
        label="B",
        subsystem_ident="sgb",
        subsystem_name="Super Game Boy",
        subsystem_roms=["/old/roms/sgb.sfc", "/other/c.gb"],
    ))
    assert playlist.write_file()
    return config.path


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


class TestInitPlaylist:
    def test_missing_file_gives_empty_playlist(self, make_config) -> None:
        playlist = init_playlist(make_config(name="nothing.lpl"))
        assert playlist is not None
        assert len(playlist) == 0
        assert not playlist.modified
        assert not os.path.exists(playlist.conf_path)

    def test_empty_file(self, make_config) -> None:
        config = make_config(name="empty.lpl")
        open(config.path, "w").close()
        playlist = init_playlist(config)
        assert len(playlist) == 0

    def test_loads_json(self, make_config) -> None:
        _save(make_config)
        playlist = init_playlist(make_config())
        assert [e.label for e in playlist.entries] == ["B", "A"]
        assert not playlist.old_format
        assert not playlist.compressed

    def test_loads_legacy(self, make_config) -> None:
        _save(make_config, old_format=True)
        playlist = init_playlist(make_config(old_format=True))
        assert playlist.old_format
        assert [e.label for e in playlist.entries] == ["B", "A"]

    def test_loads_compressed(self, make_config) -> None:
        path = _save(make_config, compress=True)
        assert _read_bytes(path).startswith(RZIP_MAGIC)
        playlist = init_playlist(make_config(compress=True))
        assert playlist.compressed
        assert len(playlist) == 2

    def test_config_is_copied(self, make_config) -> None:
        config = make_config()
        playlist = init_playlist(config)
        config.capacity = 1
        assert playlist.capacity == 100

    def test_read_failure_returns_none(self, make_config, monkeypatch) -> None:
        _save(make_config)
        monkeypatch.setattr(
            "content_playlist.core.lifecycle.read_playlist_json", lambda playlist, stream: False,
        )
        assert init_playlist(make_config()) is None

    def test_read_playlist_file_tracks_format(self, make_config) -> None:
        _save(make_config, old_format=True, compress=True)
        playlist = Playlist(make_config())
        assert read_playlist_file(playlist)
        assert playlist.old_format
        assert playlist.compressed


class TestAutofix:
    def test_paths_move_to_new_base(self, make_config) -> None:
        path = _save(make_config)
        with open(path, encoding="utf-8") as f:
            doc = json.load(f)
        doc["base_content_directory"] = "/old"
        with open(path, "w", encoding="utf-8") as f:
            json.dump(doc, f)

        playlist = init_playlist(make_config(base_content_directory="/new"))
        assert [e.path for e in playlist.entries] == ["/new/roms/b.sfc", "/new/roms/a.sfc"]
        assert playlist.get_index(0).subsystem_roms == ["/new/roms/sgb.sfc", "/other/c.gb"]
        assert playlist.base_content_directory == "/new"
        assert not playlist.modified

        with open(path, encoding="utf-8") as f:
            saved = json.load(f)
        assert saved["base_content_directory"] == "/new"
        assert saved["items"][1]["path"] == "/new/roms/a.sfc"

    def test_first_base_is_only_recorded(self, make_config) -> None:
        path = _save(make_config)
        playlist = init_playlist(make_config(base_content_directory="/roms"))
        assert playlist.get_index(1).path == "/old/roms/a.sfc"
        with open(path, encoding="utf-8") as f:
            assert json.load(f)["base_content_directory"] == "/roms"

    def test_same_base_is_left_alone(self, make_config) -> None:
        config = make_config(base_content_directory="/roms")
        playlist = Playlist(config)
        playlist.base_content_directory = "/roms"
        playlist.push(PlaylistEntry(path="/roms/a.sfc", core_path="DETECT"))
        playlist.write_file()
        mtime = os.stat(config.path).st_mtime_ns

        loaded = init_playlist(config)
        assert not loaded.modified
        assert os.stat(config.path).st_mtime_ns == mtime


class TestPlaylistCache:
    def test_init_and_get(self, make_config) -> None:
        _save(make_config)
        cache = PlaylistCache()
        assert cache.get() is None
        assert cache.init(make_config())
        assert len(cache.get()) == 2

    def test_init_migrates_legacy_to_json(self, make_config) -> None:
        path = _save(make_config, old_format=True)
        cache = PlaylistCache()
        assert cache.init(make_config())
        assert not cache.get().old_format
        assert _read_bytes(path).lstrip().startswith(b"{")

    def test_init_applies_compression(self, make_config) -> None:
        path = _save(make_config)
        cache = PlaylistCache()
        cache.init(make_config(compress=True))
        assert cache.get().compressed
        assert _read_bytes(path).startswith(RZIP_MAGIC)

    def test_init_without_mismatch_does_not_write(self, make_config) -> None:
        path = _save(make_config)
        mtime = os.stat(path).st_mtime_ns
        PlaylistCache().init(make_config())
        assert os.stat(path).st_mtime_ns == mtime

    def test_replace_frees_owned_instance(self, make_playlist, entry) -> None:
        first = make_playlist()
        first.push(entry())
        cache = PlaylistCache()
        cache.replace(first)

        cache.replace(make_playlist(name="other.lpl"))
        assert len(first) == 0
        assert cache.get() is not first

    def test_external_instance_is_not_freed(self, make_playlist, entry) -> None:
        external = make_playlist()
        external.push(entry())
        cache = PlaylistCache()
        cache.set_external(external)
        assert external.cached_external

        cache.free()
        assert cache.get() is None
        assert len(external) == 1
        assert not external.cached_external

    def test_take_transfers_ownership(self, make_playlist, entry) -> None:
        playlist = make_playlist()
        playlist.push(entry())
        cache = PlaylistCache()
        cache.replace(playlist)

        taken = cache.take()
        assert taken is playlist
        assert cache.get() is None
        cache.free()
        assert len(taken) == 1

    def test_update_and_write(self, make_playlist, entry) -> None:
        playlist = make_playlist()
        playlist.push(entry())
        cache = PlaylistCache()
        cache.replace(playlist)

        assert cache.update_and_write(0, PlaylistEntry(label="Renamed"))
        with open(playlist.conf_path, encoding="utf-8") as f:
            assert json.load(f)["items"][0]["label"] == "Renamed"
        assert not PlaylistCache().update_and_write(0, PlaylistEntry(label="x"))
