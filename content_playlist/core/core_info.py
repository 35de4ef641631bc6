"""Core metadata lookup.

Playlists only store a core *path*.  Everything else the frontend knows
about a core (display name, supported systems, databases) comes from a
``.info`` file shipped alongside it.  :class:`CoreInfoRegistry` holds those
records and answers two questions for the playlist:

* "which core is this path?" (:meth:`CoreInfoRegistry.find`)
* "are these two paths the same core?" (:func:`core_file_id_is_equal`),
  which ignores the directory and file extension so that a playlist
  written on one OS still matches the core on another.

``.info`` files use a flat ``key = "value"`` format::

    display_name = "Nintendo - SNES / SFC (Snes9x - Current)"
    corename = "Snes9x"
    supported_extensions = "smc|sfc|swc|fig|bs|st"
    database = "Nintendo - Super Nintendo Entertainment System"
"""

from __future__ import annotations

import configparser
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from content_playlist.core.path_resolver import basename_noext

_CORE_SUFFIXES = ("_libretro_android", "_libretro")


@dataclass
class CoreInfo:
    """Descriptive information about one core."""

    path: str
    """Path of the core library this record describes."""

    display_name: str = ""
    core_name: str = ""
    system_name: str = ""
    supported_extensions: list[str] = field(default_factory=list)
    databases: list[str] = field(default_factory=list)

    @property
    def file_id(self) -> str:
        return core_file_id(self.path)


def core_file_id(core_path: str | None) -> str:
    """Return the stable identity of a core file.

    ``/usr/lib/libretro/snes9x_libretro.so`` and
    ``C:\\RetroArch\\cores\\snes9x_libretro.dll`` both map to ``snes9x``.
    """
    name = basename_noext(core_path).lower()
    for suffix in _CORE_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def core_file_id_is_equal(core_path_a: str | None, core_path_b: str | None) -> bool:
    """Return ``True`` if both paths refer to the same core file identity."""
    id_a = core_file_id(core_path_a)
    id_b = core_file_id(core_path_b)
    return bool(id_a) and id_a == id_b


def _read_info_file(info_path: Path) -> dict[str, str]:
    """Read a core ``.info`` file and return its key/value pairs.

    The format has no section headers, so a dummy ``[core]`` header is
    prepended for :mod:`configparser`.  Values keep no surrounding quotes.
    """
    result: dict[str, str] = {}
    try:
        text = info_path.read_text(encoding="utf-8", errors="replace")
        cp = configparser.ConfigParser(strict=False, interpolation=None)
        cp.read_string(f"[core]\n{text}")
        for key, value in cp.items("core"):
            result[key] = value.strip().strip('"')
    except (OSError, configparser.Error) as e:
        logger.debug("Failed to parse core info {}: {}", info_path, e)
    return result


def _split_list(value: str) -> list[str]:
    return [v for v in value.split("|") if v]


class CoreInfoRegistry:
    """Registry of known cores, keyed by core file identity."""

    def __init__(self) -> None:
        self._cores: dict[str, CoreInfo] = {}

    def register(self, info: CoreInfo) -> None:
        """Manually register a core record."""
        self._cores[info.file_id] = info

    def find(self, core_path: str | None) -> CoreInfo | None:
        """Return the record for *core_path*, or ``None`` if unknown."""
        if not core_path:
            return None
        return self._cores.get(core_file_id(core_path))

    def get_all(self) -> list[CoreInfo]:
        return list(self._cores.values())

    def load_directory(self, info_dir: Path, cores_dir: Path | None = None) -> int:
        """Register every ``*.info`` file found in *info_dir*.

        Core paths are synthesised as ``<cores_dir>/<stem>`` since ``.info``
        files do not record where the library lives.  Returns the number of
        records loaded.
        """
        if not info_dir.is_dir():
            logger.warning("Core info directory not found: {}", info_dir)
            return 0

        cores_dir = cores_dir or info_dir
        loaded = 0
        for info_path in sorted(info_dir.glob("*.info")):
            data = _read_info_file(info_path)
            if not data:
                continue
            self.register(CoreInfo(
                path=str(cores_dir / info_path.stem),
                display_name=data.get("display_name", ""),
                core_name=data.get("corename", ""),
                system_name=data.get("systemname", ""),
                supported_extensions=_split_list(data.get("supported_extensions", "")),
                databases=_split_list(data.get("database", "")),
            ))
            loaded += 1
        logger.info("Loaded {} core info records from {}", loaded, info_dir)
        return loaded
