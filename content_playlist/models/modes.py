"""Playlist-wide display preferences."""

from __future__ import annotations

from enum import Enum, IntEnum


class LabelDisplayMode(IntEnum):
    """How entry labels are shortened when displayed."""

    DEFAULT = 0
    REMOVE_PARENTHESES = 1
    REMOVE_BRACKETS = 2
    REMOVE_PARENTHESES_AND_BRACKETS = 3
    KEEP_REGION = 4
    KEEP_DISC_INDEX = 5
    KEEP_REGION_AND_DISC_INDEX = 6


class ThumbnailMode(IntEnum):
    """Which thumbnail type is shown on one side of the content view."""

    DEFAULT = 0
    OFF = 1
    SCREENSHOTS = 2
    TITLE_SCREENS = 3
    BOXARTS = 4


class SortMode(IntEnum):
    DEFAULT = 0
    ALPHABETICAL = 1
    OFF = 2


class ThumbnailId(str, Enum):
    RIGHT = "right"
    LEFT = "left"


def coerce_mode(enum_cls: type[IntEnum], value: int) -> IntEnum | None:
    """Return ``enum_cls(value)``, or ``None`` when *value* is out of range."""
    try:
        return enum_cls(value)
    except ValueError:
        return None
