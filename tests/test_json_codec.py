"""Unit tests for the JSON playlist writer and streaming reader."""

from __future__ import annotations

import json
import os

import pytest

from content_playlist.core import json_codec
from content_playlist.core.file_stream import open_read, open_write
from content_playlist.core.json_codec import (
    read_playlist_json,
    write_playlist_json,
    write_runtime_json,
)
from content_playlist.core.playlist import Playlist
from content_playlist.models.entry import PlaylistEntry
from content_playlist.models.modes import LabelDisplayMode, SortMode, ThumbnailMode

EXPECTED_PRETTY = """{
  "version": "1.4",
  "default_core_path": "",
  "default_core_name": "",
  "label_display_mode": 0,
  "right_thumbnail_mode": 0,
  "left_thumbnail_mode": 0,
  "sort_mode": 0,
  "items": [
    {
      "path": "/roms/a.sfc",
      "label": "A",
      "core_path": "DETECT",
      "core_name": "DETECT",
      "crc32": "",
      "db_name": ""
    }
  ]
}
"""


def _write(playlist: Playlist, compact: bool = False) -> str:
    stream = open_write(playlist.conf_path)
    with stream:
        write_playlist_json(playlist, stream, compact=compact)
    with open(playlist.conf_path, encoding="utf-8") as f:
        return f.read()


def _read_text(make_config, text: str | bytes, capacity: int = 100) -> Playlist:
    playlist = Playlist(make_config(name="read.lpl", capacity=capacity))
    data = text.encode("utf-8") if isinstance(text, str) else text
    with open(playlist.conf_path, "wb") as f:
        f.write(data)
    stream = open_read(playlist.conf_path)
    with stream:
        assert read_playlist_json(playlist, stream)
    return playlist


def _items(count: int) -> str:
    items = [
        {"path": f"/roms/{i}.sfc", "label": f"Game {i}", "core_path": "DETECT", "core_name": "DETECT"}
        for i in range(count)
    ]
    return json.dumps({"version": "1.4", "items": items})


class TestWriter:
    def test_pretty_layout(self, make_playlist) -> None:
        playlist = make_playlist()
        playlist.push(PlaylistEntry(path="/roms/a.sfc", label="A", core_path="DETECT", core_name="DETECT"))
        assert _write(playlist) == EXPECTED_PRETTY

    def test_empty_playlist(self, make_playlist) -> None:
        text = _write(make_playlist())
        assert text.endswith('  "items": [\n  ]\n}\n')
        assert json.loads(text)["items"] == []

    def test_base_content_directory_only_when_set(self, make_playlist) -> None:
        playlist = make_playlist()
        assert "base_content_directory" not in _write(playlist)
        playlist.base_content_directory = "/roms"
        assert json.loads(_write(playlist))["base_content_directory"] == "/roms"

    def test_key_order(self, make_playlist, entry) -> None:
        playlist = make_playlist()
        playlist.push(entry(
            subsystem_ident="sgb",
            subsystem_name="Super Game Boy",
            subsystem_roms=["/roms/a.sfc", "/roms/b.gb"],
        ))
        doc = json.loads(_write(playlist))
        assert list(doc) == [
            "version", "default_core_path", "default_core_name",
            "label_display_mode", "right_thumbnail_mode", "left_thumbnail_mode",
            "sort_mode", "items",
        ]
        assert list(doc["items"][0]) == [
            "path", "label", "core_path", "core_name", "crc32", "db_name",
            "subsystem_ident", "subsystem_name", "subsystem_roms",
        ]

    def test_compact_has_no_whitespace(self, make_playlist, entry) -> None:
        playlist = make_playlist()
        playlist.push(entry(label="Game One", subsystem_ident="x", subsystem_name="X",
                            subsystem_roms=["/a", "/b"]))
        text = _write(playlist, compact=True)
        assert "\n" not in text
        assert ": " not in text
        assert json.loads(text) == json.loads(_write(playlist))

    def test_non_ascii_is_written_as_utf8(self, make_playlist, entry) -> None:
        playlist = make_playlist()
        playlist.push(entry(label="ポケモン"))
        assert '"label": "ポケモン"' in _write(playlist)

    def test_runtime_layout(self, make_playlist, entry) -> None:
        playlist = make_playlist()
        playlist.push_runtime(entry(runtime_hours=1, last_played_year=2024))
        stream = open_write(playlist.conf_path)
        with stream:
            write_runtime_json(playlist, stream)
        with open(playlist.conf_path, encoding="utf-8") as f:
            doc = json.load(f)

        assert doc["version"] == "1.0"
        item = doc["items"][0]
        assert list(item) == [
            "path", "core_path",
            "runtime_hours", "runtime_minutes", "runtime_seconds",
            "last_played_year", "last_played_month", "last_played_day",
            "last_played_hour", "last_played_minute", "last_played_second",
        ]
        assert item["runtime_hours"] == 1
        assert item["last_played_year"] == 2024


class TestReader:
    def test_round_trip(self, make_config, make_playlist, entry) -> None:
        source = make_playlist()
        source.push(entry("/roms/a.sfc", label="A", crc32="DEADBEEF|crc", db_name="SNES.lpl"))
        source.push(entry(
            "/roms/b.sfc",
            core_path="/cores/x.so",
            core_name="X",
            subsystem_ident="sgb",
            subsystem_name="Super Game Boy",
            subsystem_roms=["/roms/sgb.sfc", "/roms/b.gb"],
        ))
        source.default_core_path = "/cores/x.so"
        source.default_core_name = "X"
        source.label_display_mode = LabelDisplayMode.KEEP_REGION
        source.right_thumbnail_mode = ThumbnailMode.BOXARTS
        source.sort_mode = SortMode.OFF

        loaded = _read_text(make_config, _write(source))
        assert list(loaded.entries) == list(source.entries)
        assert loaded.default_core_path == "/cores/x.so"
        assert loaded.default_core_name == "X"
        assert loaded.label_display_mode == LabelDisplayMode.KEEP_REGION
        assert loaded.right_thumbnail_mode == ThumbnailMode.BOXARTS
        assert loaded.left_thumbnail_mode == ThumbnailMode.DEFAULT
        assert loaded.sort_mode == SortMode.OFF
        assert not loaded.modified

    def test_capacity_exceeded(self, make_config, log_records) -> None:
        loaded = _read_text(make_config, _items(3), capacity=2)
        assert len(loaded) == 2
        assert loaded.modified
        assert not loaded.entry_exists("/roms/2.sfc")
        assert loaded.get_index(1).label == "Game 1"
        warnings = [r for r in log_records if r["level"].name == "WARNING"]
        assert len(warnings) == 1

    def test_metadata_after_items_still_applies(self, make_config) -> None:
        text = (
            '{"items": [{"path": "/a", "core_path": "DETECT"},'
            ' {"path": "/b", "core_path": "DETECT"}], "sort_mode": 2}'
        )
        loaded = _read_text(make_config, text, capacity=1)
        assert len(loaded) == 1
        assert loaded.sort_mode == SortMode.OFF

    @pytest.mark.parametrize("chunk_size", [1, 3, 7, 64])
    def test_chunk_boundaries(self, make_config, monkeypatch, chunk_size) -> None:
        monkeypatch.setattr(json_codec, "JSON_READ_CHUNK_SIZE", chunk_size)
        loaded = _read_text(make_config, _items(4))
        assert [e.label for e in loaded.entries] == ["Game 0", "Game 1", "Game 2", "Game 3"]

    def test_unknown_keys_are_ignored(self, make_config) -> None:
        text = json.dumps({
            "future_field": {"nested": [1, 2, {"path": "/nope"}]},
            "items": [{
                "path": "/roms/a.sfc",
                "core_path": "DETECT",
                "rating": 5,
                "extra": {"label": "wrong"},
                "tags": ["x", "y"],
            }],
        })
        loaded = _read_text(make_config, text)
        assert len(loaded) == 1
        stored = loaded.get_index(0)
        assert stored.path == "/roms/a.sfc"
        assert stored.label is None

    def test_out_of_range_modes_are_ignored(self, make_config) -> None:
        loaded = _read_text(make_config, '{"label_display_mode": 9, "sort_mode": 1, "items": []}')
        assert loaded.label_display_mode == LabelDisplayMode.DEFAULT
        assert loaded.sort_mode == SortMode.ALPHABETICAL

    def test_empty_strings_stay_unset(self, make_config) -> None:
        loaded = _read_text(make_config, '{"items": [{"path": "/a", "label": "", "core_path": "DETECT"}]}')
        assert loaded.get_index(0).label is None

    def test_byte_order_mark_is_skipped(self, make_config) -> None:
        data = b"\xef\xbb\xbf" + _items(1).encode("utf-8")
        loaded = _read_text(make_config, data)
        assert len(loaded) == 1

    def test_invalid_utf8_is_replaced(self, make_config) -> None:
        data = (
            b'{"items": [{"path": "/roms/a.sfc", "core_path": "DETECT"},'
            b' {"path": "/roms/\xff\xfe.sfc", "core_path": "DETECT"},'
            b' {"path": "/roms/c.sfc", "core_path": "DETECT"}], "sort_mode": 2}'
        )
        loaded = _read_text(make_config, data)
        assert [e.path for e in loaded.entries] == [
            "/roms/a.sfc", "/roms/\ufffd\ufffd.sfc", "/roms/c.sfc",
        ]
        assert loaded.sort_mode == SortMode.OFF

    @pytest.mark.parametrize("chunk_size", [1, 5])
    def test_multibyte_sequence_split_across_chunks(self, make_config, monkeypatch, chunk_size) -> None:
        monkeypatch.setattr(json_codec, "JSON_READ_CHUNK_SIZE", chunk_size)
        loaded = _read_text(make_config, '{"items": [{"path": "/roms/ゲーム.sfc", "core_path": "DETECT"}]}')
        assert loaded.get_index(0).path == "/roms/ゲーム.sfc"

    def test_comments_are_allowed(self, make_config) -> None:
        text = (
            "{\n"
            '  // hand-edited\n'
            '  "items": [\n'
            '    {"path": "/roms/a.sfc", "core_path": "DETECT"}, // first\n'
            '    /* disabled: {"path": "/roms/x.sfc"}, */\n'
            '    {"path": "/roms/b.sfc", "core_path": "DETECT"}\n'
            "  ],\n"
            '  "sort_mode": 2 // off\n'
            "}\n"
        )
        loaded = _read_text(make_config, text)
        assert [e.path for e in loaded.entries] == ["/roms/a.sfc", "/roms/b.sfc"]
        assert loaded.sort_mode == SortMode.OFF

    def test_non_string_rom_values_are_skipped(self, make_config) -> None:
        text = json.dumps({"items": [{
            "path": "/a",
            "core_path": "DETECT",
            "subsystem_roms": ["/x", None, 3, True, "/y"],
            "label": "After",
        }]})
        loaded = _read_text(make_config, text)
        stored = loaded.get_index(0)
        assert stored.subsystem_roms == ["/x", "/y"]
        assert stored.label == "After"

    def test_malformed_input_keeps_committed_entries(self, make_config, monkeypatch, log_records) -> None:
        monkeypatch.setattr(json_codec, "JSON_READ_CHUNK_SIZE", 16)
        text = '{"items": [{"path": "/a", "core_path": "DETECT"}, {"path": oops}]}'
        loaded = _read_text(make_config, text)
        assert [e.path for e in loaded.entries] == ["/a"]
        assert any(
            r["level"].name == "WARNING" and "Invalid JSON" in r["message"] for r in log_records
        )

    def test_truncated_input(self, make_config) -> None:
        loaded = _read_text(make_config, '{"items": [{"path": "/a", "core_path": "DETECT"}, {"pa')
        assert len(loaded) == 1

    def test_runtime_fields_are_read(self, make_config) -> None:
        text = json.dumps({"items": [{
            "path": "/a", "core_path": "DETECT", "runtime_hours": 3, "last_played_day": 14,
        }]})
        loaded = _read_text(make_config, text)
        assert loaded.get_index(0).runtime_hours == 3
        assert loaded.get_index(0).last_played_day == 14


def test_large_playlist_streams_through(make_config) -> None:
    loaded = _read_text(make_config, _items(500), capacity=1000)
    assert len(loaded) == 500
    assert os.path.getsize(loaded.conf_path) > json_codec.JSON_READ_CHUNK_SIZE
