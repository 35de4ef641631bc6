"""Legacy line-based playlist format.

Older frontends store each entry as six consecutive lines::

    /roms/game.sfc          path
    Game                    label
    /cores/snes9x.so        core_path
    Snes9x                  core_name
    DEADBEEF|crc            crc32
    Nintendo - SNES.lpl     db_name

Any line may be empty.  After the last entry comes a metadata block, one
``key = "value"`` line per field in this fixed order::

    default_core_path = "/cores/snes9x.so"
    default_core_name = "Snes9x"
    label_display_mode = "0"
    thumbnail_mode = "0|0"          right|left
    sort_mode = "0"

The metadata is appended at the end so that old readers, which only know
about 6-line blocks, simply stop at it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from content_playlist.core.file_stream import FileStream
from content_playlist.models.entry import PlaylistEntry
from content_playlist.models.modes import LabelDisplayMode, SortMode, ThumbnailMode, coerce_mode

if TYPE_CHECKING:
    from content_playlist.core.playlist import Playlist

LINES_PER_ENTRY = 6


def detect_legacy_format(stream: FileStream) -> bool | None:
    """Sniff the playlist format and rewind the stream.

    Returns ``False`` for JSON (first printable ASCII byte is ``{``),
    ``True`` for the legacy format, and ``None`` if the file holds no
    printable character at all.
    """
    try:
        while True:
            c = stream.getc()
            if c is None:
                return None
            # printable, non-space ASCII
            if 0x21 <= c <= 0x7E:
                return c != ord("{")
    finally:
        stream.rewind()


def get_metadata_value(line: str) -> str:
    """Return the text between the first pair of double quotes in *line*.

    ``'sort_mode = "2"'`` -> ``'2'``.  Returns ``''`` when the line has no
    complete quoted value.
    """
    start = line.find('"')
    if start < 0:
        return ""
    end = line.find('"', start + 1)
    if end < 0:
        return ""
    return line[start + 1:end]


def _to_unsigned(text: str) -> int | None:
    text = text.strip()
    return int(text) if text.isascii() and text.isdigit() else None


def _read_line(stream: FileStream) -> str | None:
    raw = stream.readline()
    if not raw:
        return None
    line = raw.decode("utf-8", errors="replace")
    return line.replace("\r", "").replace("\n", "")


def _parse_metadata(playlist: Playlist, lines: list[str]) -> None:
    """Apply the metadata block, reading fields by line position."""
    if len(lines) < 1:
        return
    default_core_path = ""
    if lines[0].startswith("default_core_path"):
        default_core_path = get_metadata_value(lines[0])

    if len(lines) < 2:
        return
    default_core_name = ""
    if lines[1].startswith("default_core_name"):
        default_core_name = get_metadata_value(lines[1])

    # one without the other is meaningless
    if default_core_path and default_core_name:
        playlist.default_core_path = default_core_path
        playlist.default_core_name = default_core_name

    if len(lines) < 3:
        return
    if lines[2].startswith("label_display_mode"):
        value = _to_unsigned(get_metadata_value(lines[2]))
        mode = coerce_mode(LabelDisplayMode, value) if value is not None else None
        if mode is not None:
            playlist.label_display_mode = mode

    if len(lines) < 4:
        return
    if lines[3].startswith("thumbnail_mode"):
        parts = get_metadata_value(lines[3]).split("|")
        if len(parts) == 2:
            right, left = (_to_unsigned(p) for p in parts)
            right_mode = coerce_mode(ThumbnailMode, right) if right is not None else None
            left_mode = coerce_mode(ThumbnailMode, left) if left is not None else None
            if right_mode is not None:
                playlist.right_thumbnail_mode = right_mode
            if left_mode is not None:
                playlist.left_thumbnail_mode = left_mode

    if len(lines) < 5:
        return
    if lines[4].startswith("sort_mode"):
        value = _to_unsigned(get_metadata_value(lines[4]))
        mode = coerce_mode(SortMode, value) if value is not None else None
        if mode is not None:
            playlist.sort_mode = mode


def read_playlist_legacy(playlist: Playlist, stream: FileStream) -> bool:
    """Parse a legacy playlist from *stream* into *playlist*.

    Entries past the playlist capacity are discarded (and the playlist
    flagged as modified) but scanning continues so the trailing metadata
    block is still applied.  Returns ``False`` only when out of memory.
    """
    warned = False
    while True:
        lines: list[str] = []
        for _ in range(LINES_PER_ENTRY):
            line = _read_line(stream)
            if line is None:
                break
            lines.append(line)

        if len(lines) < LINES_PER_ENTRY:
            _parse_metadata(playlist, lines)
            return True

        if len(playlist.entries) >= playlist.capacity:
            if not warned:
                logger.warning(
                    "Playlist {} contains more entries than its capacity ({}). "
                    "Excess entries will be discarded.",
                    playlist.conf_path, playlist.capacity,
                )
                warned = True
            playlist.modified = True
            continue

        path, label, core_path, core_name, crc32, db_name = (line or None for line in lines)
        entry = PlaylistEntry(
            path=path,
            label=label,
            core_path=core_path,
            core_name=core_name,
            crc32=crc32,
            db_name=db_name,
        )
        if not playlist.entries.append(entry):
            return False


def write_playlist_legacy(playlist: Playlist, stream: FileStream) -> None:
    """Serialise *playlist* to *stream* in the legacy format."""
    out: list[str] = []
    for entry in playlist.entries:
        for value in (
            entry.path,
            entry.label,
            entry.core_path,
            entry.core_name,
            entry.crc32,
            entry.db_name,
        ):
            out.append(f"{value or ''}\n")

    out.append(f'default_core_path = "{playlist.default_core_path or ""}"\n')
    out.append(f'default_core_name = "{playlist.default_core_name or ""}"\n')
    out.append(f'label_display_mode = "{int(playlist.label_display_mode)}"\n')
    out.append(
        f'thumbnail_mode = "{int(playlist.right_thumbnail_mode)}'
        f'|{int(playlist.left_thumbnail_mode)}"\n'
    )
    out.append(f'sort_mode = "{int(playlist.sort_mode)}"\n')
    stream.write("".join(out))
