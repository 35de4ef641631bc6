"""JSON playlist format: writer and streaming reader.

Layout written by :func:`write_playlist_json`::

    {
      "version": "1.4",
      "default_core_path": "",
      "default_core_name": "",
      "base_content_directory": "/roms",      <- only when set
      "label_display_mode": 0,
      "right_thumbnail_mode": 0,
      "left_thumbnail_mode": 0,
      "sort_mode": 0,
      "items": [
        {
          "path": "/roms/game.sfc",
          "label": "Game",
          "core_path": "DETECT",
          "core_name": "DETECT",
          "crc32": "DEADBEEF|crc",
          "db_name": "Nintendo - SNES.lpl",
          "subsystem_ident": "...",           <- optional
          "subsystem_name": "...",            <- optional
          "subsystem_roms": ["...", "..."]    <- optional
        }
      ]
    }

Keys are always written in this order.  Compressed files are written
without any whitespace; the structure is otherwise identical.

Reading is event driven: the file is pushed through ``ijson`` in fixed
size chunks and :class:`PlaylistJsonReader` builds entries as the events
arrive, so a playlist larger than its capacity never has to be held in
memory.  Readers do not look at ``version``.
"""

from __future__ import annotations

import codecs
import json
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, NamedTuple

import ijson
from loguru import logger

from content_playlist.core.file_stream import FileStream
from content_playlist.models.entry import LAST_PLAYED_FIELDS, RUNTIME_FIELDS, PlaylistEntry
from content_playlist.models.modes import LabelDisplayMode, SortMode, ThumbnailMode, coerce_mode

if TYPE_CHECKING:
    from content_playlist.core.playlist import Playlist

PLAYLIST_JSON_VERSION = "1.4"
RUNTIME_JSON_VERSION = "1.0"
JSON_READ_CHUNK_SIZE = 4096

# comment support needs a yajl backend
_JSON_BACKEND = ijson.get_backend("yajl2_c")


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------

class JsonWriter:
    """Token-level JSON writer with switchable whitespace.

    In compact mode :meth:`new_line` and :meth:`space` do nothing, so the
    same sequence of calls produces either the indented or the minimal
    form.
    """

    def __init__(self, stream: FileStream, compact: bool = False) -> None:
        self._stream = stream
        self._parts: list[str] = []
        if compact:
            self.new_line = self._skip_new_line  # type: ignore[method-assign]
            self.space = self._skip_space  # type: ignore[method-assign]

    def start_object(self) -> None:
        self._parts.append("{")

    def end_object(self) -> None:
        self._parts.append("}")

    def start_array(self) -> None:
        self._parts.append("[")

    def end_array(self) -> None:
        self._parts.append("]")

    def colon(self) -> None:
        self._parts.append(":")

    def comma(self) -> None:
        self._parts.append(",")

    def string(self, value: str | None) -> None:
        self._parts.append(json.dumps(value or "", ensure_ascii=False))

    def number(self, value: int) -> None:
        self._parts.append(str(int(value)))

    def new_line(self) -> None:
        self._parts.append("\n")

    def space(self, count: int) -> None:
        self._parts.append(" " * count)

    def _skip_new_line(self) -> None:
        pass

    def _skip_space(self, count: int) -> None:
        pass

    def key(self, indent: int, name: str) -> None:
        self.space(indent)
        self.string(name)
        self.colon()
        self.space(1)

    def string_member(self, indent: int, name: str, value: str | None) -> None:
        self.key(indent, name)
        self.string(value)

    def number_member(self, indent: int, name: str, value: int) -> None:
        self.key(indent, name)
        self.number(value)

    def flush(self) -> None:
        self._stream.write("".join(self._parts))
        self._parts.clear()


def _write_item(w: JsonWriter, entry: PlaylistEntry) -> None:
    w.space(4)
    w.start_object()

    fields = (
        ("path", entry.path),
        ("label", entry.label),
        ("core_path", entry.core_path),
        ("core_name", entry.core_name),
        ("crc32", entry.crc32),
        ("db_name", entry.db_name),
    )
    for i, (name, value) in enumerate(fields):
        if i:
            w.comma()
        w.new_line()
        w.string_member(6, name, value)

    if entry.subsystem_ident:
        w.comma()
        w.new_line()
        w.string_member(6, "subsystem_ident", entry.subsystem_ident)

    if entry.subsystem_name:
        w.comma()
        w.new_line()
        w.string_member(6, "subsystem_name", entry.subsystem_name)

    if entry.subsystem_roms:
        w.comma()
        w.new_line()
        w.key(6, "subsystem_roms")
        w.start_array()
        w.new_line()
        last = len(entry.subsystem_roms) - 1
        for j, rom in enumerate(entry.subsystem_roms):
            w.space(8)
            w.string(rom)
            if j < last:
                w.comma()
                w.new_line()
        w.new_line()
        w.space(6)
        w.end_array()

    w.new_line()
    w.space(4)
    w.end_object()


def write_playlist_json(playlist: Playlist, stream: FileStream, compact: bool = False) -> None:
    """Serialise *playlist* to *stream* in the JSON format."""
    w = JsonWriter(stream, compact)

    w.start_object()
    w.new_line()

    w.string_member(2, "version", PLAYLIST_JSON_VERSION)
    w.comma()
    w.new_line()

    w.string_member(2, "default_core_path", playlist.default_core_path)
    w.comma()
    w.new_line()

    w.string_member(2, "default_core_name", playlist.default_core_name)
    w.comma()
    w.new_line()

    if playlist.base_content_directory:
        w.string_member(2, "base_content_directory", playlist.base_content_directory)
        w.comma()
        w.new_line()

    for name, value in (
        ("label_display_mode", playlist.label_display_mode),
        ("right_thumbnail_mode", playlist.right_thumbnail_mode),
        ("left_thumbnail_mode", playlist.left_thumbnail_mode),
        ("sort_mode", playlist.sort_mode),
    ):
        w.number_member(2, name, value)
        w.comma()
        w.new_line()

    w.key(2, "items")
    w.start_array()
    w.new_line()

    entries = list(playlist.entries)
    for i, entry in enumerate(entries):
        _write_item(w, entry)
        if i < len(entries) - 1:
            w.comma()
        w.new_line()

    w.space(2)
    w.end_array()
    w.new_line()
    w.end_object()
    w.new_line()
    w.flush()


def write_runtime_json(playlist: Playlist, stream: FileStream) -> None:
    """Write the runtime sidecar: content/core paths plus play time only."""
    w = JsonWriter(stream)

    w.start_object()
    w.new_line()
    w.string_member(2, "version", RUNTIME_JSON_VERSION)
    w.comma()
    w.new_line()
    w.key(2, "items")
    w.start_array()
    w.new_line()

    entries = list(playlist.entries)
    for i, entry in enumerate(entries):
        w.space(4)
        w.start_object()
        w.new_line()
        w.string_member(6, "path", entry.path)
        w.comma()
        w.new_line()
        w.string_member(6, "core_path", entry.core_path)
        for name in RUNTIME_FIELDS + LAST_PLAYED_FIELDS:
            w.comma()
            w.new_line()
            w.number_member(6, name, getattr(entry, name))
        w.new_line()
        w.space(4)
        w.end_object()
        if i < len(entries) - 1:
            w.comma()
        w.new_line()

    w.space(2)
    w.end_array()
    w.new_line()
    w.end_object()
    w.new_line()
    w.flush()


# ---------------------------------------------------------------------------
# Reader
# ---------------------------------------------------------------------------

class _SlotKind(Enum):
    STRING = "string"
    UINT = "uint"
    STRING_LIST = "string_list"
    MODE = "mode"


class _Slot(NamedTuple):
    kind: _SlotKind
    attr: str
    enum_cls: Any = None


_ITEM_SLOTS: dict[str, _Slot] = {
    "path": _Slot(_SlotKind.STRING, "path"),
    "label": _Slot(_SlotKind.STRING, "label"),
    "core_path": _Slot(_SlotKind.STRING, "core_path"),
    "core_name": _Slot(_SlotKind.STRING, "core_name"),
    "crc32": _Slot(_SlotKind.STRING, "crc32"),
    "db_name": _Slot(_SlotKind.STRING, "db_name"),
    "subsystem_ident": _Slot(_SlotKind.STRING, "subsystem_ident"),
    "subsystem_name": _Slot(_SlotKind.STRING, "subsystem_name"),
    "subsystem_roms": _Slot(_SlotKind.STRING_LIST, "subsystem_roms"),
    **{name: _Slot(_SlotKind.UINT, name) for name in RUNTIME_FIELDS + LAST_PLAYED_FIELDS},
}

_META_SLOTS: dict[str, _Slot] = {
    "default_core_path": _Slot(_SlotKind.STRING, "default_core_path"),
    "default_core_name": _Slot(_SlotKind.STRING, "default_core_name"),
    "base_content_directory": _Slot(_SlotKind.STRING, "base_content_directory"),
    "label_display_mode": _Slot(_SlotKind.MODE, "label_display_mode", LabelDisplayMode),
    "right_thumbnail_mode": _Slot(_SlotKind.MODE, "right_thumbnail_mode", ThumbnailMode),
    "left_thumbnail_mode": _Slot(_SlotKind.MODE, "left_thumbnail_mode", ThumbnailMode),
    "sort_mode": _Slot(_SlotKind.MODE, "sort_mode", SortMode),
}


class PlaylistParseAbort(Exception):
    """Raised by the reader to stop parsing (e.g. out of memory)."""


class PlaylistJsonReader:
    """State machine turning JSON parse events into playlist entries.

    Events are the ``(event, value)`` pairs produced by
    ``ijson.basic_parse``.  Only two depths matter: the top-level object
    (``object_depth == 1``), which carries the playlist metadata, and the
    objects inside its ``items`` array (``object_depth == 2``), which are
    the entries.  Everything else is walked over and ignored.

    A member name selects a *slot*; the next scalar value is written into
    that slot and the selection is cleared.  Unknown names select nothing,
    so their values are dropped.
    """

    def __init__(self, playlist: Playlist) -> None:
        self._playlist = playlist

        self.object_depth = 0
        self.array_depth = 0
        self.in_items = False
        self.in_subsystem_roms = False
        self.capacity_exceeded = False
        self.out_of_memory = False

        self._meta_key: str | None = None
        self._item_key: str | None = None
        self._current_entry: PlaylistEntry | None = None
        self._entry_slot: _Slot | None = None
        self._meta_slot: _Slot | None = None

        self._handlers: dict[str, Callable[[Any], None]] = {
            "start_map": self._start_object,
            "end_map": self._end_object,
            "start_array": self._start_array,
            "end_array": self._end_array,
            "map_key": self._object_member,
            "string": self._string,
            "number": self._number,
            "boolean": self._other_value,
            "null": self._other_value,
        }

    def feed(self, events: list[tuple[str, Any]]) -> None:
        for event, value in events:
            handler = self._handlers.get(event)
            if handler is not None:
                handler(value)

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def _start_array(self, _value: Any) -> None:
        self.array_depth += 1

        if self.object_depth == 1:
            if self._meta_key == "items" and self.array_depth == 1:
                self.in_items = True
        elif self.object_depth == 2:
            if self.array_depth == 2 and self._item_key == "subsystem_roms":
                self.in_subsystem_roms = True

    def _end_array(self, _value: Any) -> None:
        self.array_depth -= 1

        if self.object_depth == 1:
            if self.in_items and self._meta_key == "items" and self.array_depth == 0:
                self.in_items = False
                self._meta_key = None
                self._item_key = None
        elif self.object_depth == 2:
            if (
                self.in_subsystem_roms
                and self._item_key == "subsystem_roms"
                and self.array_depth == 1
            ):
                self.in_subsystem_roms = False
                self._entry_slot = None

    def _start_object(self, _value: Any) -> None:
        self.object_depth += 1

        if not (self.in_items and self.object_depth == 2 and self.array_depth == 1):
            return
        if self.capacity_exceeded:
            return

        playlist = self._playlist
        if len(playlist.entries) < playlist.capacity:
            self._current_entry = PlaylistEntry()
        else:
            # Keep going: metadata may still follow the items array
            logger.warning(
                "Playlist {} contains more entries than its capacity ({}). "
                "Excess entries will be discarded.",
                playlist.conf_path, playlist.capacity,
            )
            self.capacity_exceeded = True
            self._current_entry = None
            playlist.modified = True

    def _end_object(self, _value: Any) -> None:
        if (
            self.in_items
            and self.object_depth == 2
            and self.array_depth == 1
            and not self.capacity_exceeded
            and self._current_entry is not None
        ):
            if not self._playlist.entries.append(self._current_entry):
                self.out_of_memory = True
                raise PlaylistParseAbort("out of memory while committing entry")
            self._current_entry = None

        self.object_depth -= 1

    # ------------------------------------------------------------------
    # Members and values
    # ------------------------------------------------------------------

    def _object_member(self, name: str) -> None:
        if self.in_items and self.object_depth == 2:
            if self.array_depth != 1:
                return
            self._item_key = name
            if self.capacity_exceeded or self._current_entry is None:
                self._entry_slot = None
            else:
                self._entry_slot = _ITEM_SLOTS.get(name)
        elif self.object_depth == 1 and self.array_depth == 0:
            self._meta_key = name
            self._meta_slot = _META_SLOTS.get(name)

    def _string(self, value: str) -> None:
        if self._in_rom_list():
            slot = self._entry_slot
            entry = self._current_entry
            if slot is not None and slot.kind is _SlotKind.STRING_LIST and entry and value:
                if entry.subsystem_roms is None:
                    entry.subsystem_roms = []
                entry.subsystem_roms.append(value)
            # the list stays selected until the array closes
            return

        if self.in_items and self.object_depth == 2:
            slot = self._entry_slot
            if (
                self.array_depth == 1
                and slot is not None
                and slot.kind is _SlotKind.STRING
                and self._current_entry is not None
                and value
            ):
                setattr(self._current_entry, slot.attr, value)
        elif self.object_depth == 1 and self.array_depth == 0:
            slot = self._meta_slot
            if slot is not None and slot.kind is _SlotKind.STRING and value:
                setattr(self._playlist, slot.attr, value)

        self._clear_selection()

    def _number(self, value: Any) -> None:
        if self._in_rom_list():
            return
        number = max(int(value), 0)

        if self.in_items and self.object_depth == 2:
            slot = self._entry_slot
            if (
                self.array_depth == 1
                and slot is not None
                and slot.kind is _SlotKind.UINT
                and self._current_entry is not None
            ):
                setattr(self._current_entry, slot.attr, number)
        elif self.object_depth == 1 and self.array_depth == 0:
            slot = self._meta_slot
            if slot is not None and slot.kind is _SlotKind.MODE:
                mode = coerce_mode(slot.enum_cls, number)
                if mode is not None:
                    setattr(self._playlist, slot.attr, mode)
                else:
                    logger.debug("Ignoring out-of-range {} = {}", slot.attr, number)

        self._clear_selection()

    def _other_value(self, _value: Any) -> None:
        if self._in_rom_list():
            return
        self._clear_selection()

    def _in_rom_list(self) -> bool:
        # non-string values inside the list are skipped; the list stays selected
        return (
            self.in_items
            and self.in_subsystem_roms
            and self.object_depth == 2
            and self.array_depth == 2
        )

    def _clear_selection(self) -> None:
        self._entry_slot = None
        self._meta_slot = None


def read_playlist_json(playlist: Playlist, stream: FileStream) -> bool:
    """Parse a JSON playlist from *stream* into *playlist*.

    Hand-edited files are accepted as far as possible: a leading BOM is
    skipped, invalid UTF-8 sequences become U+FFFD and ``//``/``/* */``
    comments are allowed.  Anything else that is malformed is logged and
    stops the parse; entries committed before the error are kept.
    Returns ``False`` only when parsing ran out of memory.
    """
    reader = PlaylistJsonReader(playlist)
    events = ijson.sendable_list()
    parser = _JSON_BACKEND.basic_parse_coro(events, allow_comments=True)
    decoder = codecs.getincrementaldecoder("utf-8-sig")(errors="replace")
    offset = 0

    try:
        try:
            while not stream.eof():
                chunk = stream.read(JSON_READ_CHUNK_SIZE)
                if not chunk:
                    logger.warning("Could not read JSON input from {}", stream.path)
                    break
                offset += len(chunk)

                parser.send(decoder.decode(chunk).encode("utf-8"))
                reader.feed(events)
                del events[:]

            tail = decoder.decode(b"", final=True)
            if tail:
                parser.send(tail.encode("utf-8"))
            parser.close()
        except ijson.JSONError as e:
            logger.warning(
                "Invalid JSON in {} (input byte {}): {}", stream.path, offset, e,
            )
        # events produced before end of input or before the error
        reader.feed(events)
    except PlaylistParseAbort as e:
        if reader.out_of_memory:
            logger.warning("Ran out of memory while parsing JSON playlist {}", stream.path)
            return False
        logger.warning("JSON parsing of {} aborted: {}", stream.path, e)

    return True
