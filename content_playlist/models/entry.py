"""Data model for playlist entries."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

# Reserved core path values that stand in for a real core file
CORE_PATH_DETECT = "DETECT"
CORE_PATH_BUILTIN = "builtin"

CORE_PATH_SENTINELS = (CORE_PATH_DETECT, CORE_PATH_BUILTIN)


class RuntimeStatus(IntEnum):
    """Whether the runtime fields of an entry have been looked up."""

    UNKNOWN = 0
    INVALID = 1
    VALID = 2


@dataclass
class PlaylistEntry:
    """One content/core association stored in a playlist.

    String fields are ``None`` when unset.  An empty string read from disk
    is normalised to ``None`` by the codecs, so "unset" and "empty" are
    interchangeable for comparisons.
    """

    path: str | None = None
    """Content path (may be an ``archive#inner`` path)."""

    label: str | None = None
    """Display label."""

    core_path: str | None = None
    """Core file path, or one of :data:`CORE_PATH_SENTINELS`."""

    core_name: str | None = None
    """Core display name."""

    db_name: str | None = None
    """Database (``.lpl``/``.rdb``) name the entry belongs to."""

    crc32: str | None = None
    """Checksum string, e.g. ``'DEADBEEF|crc'``."""

    subsystem_ident: str | None = None
    subsystem_name: str | None = None
    subsystem_roms: list[str] | None = None
    """Extra ROM paths for multi-ROM subsystem content."""

    runtime_status: RuntimeStatus = RuntimeStatus.UNKNOWN
    runtime_hours: int = 0
    runtime_minutes: int = 0
    runtime_seconds: int = 0

    last_played_year: int = 0
    last_played_month: int = 0
    last_played_day: int = 0
    last_played_hour: int = 0
    last_played_minute: int = 0
    last_played_second: int = 0

    runtime_str: str | None = None
    """Cached display string for the accumulated runtime."""

    last_played_str: str | None = None
    """Cached display string for the last-played timestamp."""


RUNTIME_FIELDS: tuple[str, ...] = (
    "runtime_hours",
    "runtime_minutes",
    "runtime_seconds",
)

LAST_PLAYED_FIELDS: tuple[str, ...] = (
    "last_played_year",
    "last_played_month",
    "last_played_day",
    "last_played_hour",
    "last_played_minute",
    "last_played_second",
)
