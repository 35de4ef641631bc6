"""Per-playlist configuration snapshot."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass
class PlaylistConfig:
    """Settings a playlist is created with.

    A playlist keeps its own copy (see :meth:`copy`), so later edits to the
    caller's object do not leak into an open playlist.
    """

    path: str = ""
    """Location of the playlist file on disk."""

    base_content_directory: str = ""
    """Base directory used to relocate content paths between machines."""

    capacity: int = 0
    """Maximum number of entries.  ``0`` disables pushing new entries."""

    old_format: bool = False
    """Write the legacy 6-lines-per-entry format instead of JSON."""

    compress: bool = False
    """Write the file through the compressed (RZIP) stream."""

    fuzzy_archive_match: bool = False
    """Treat ``foo.zip`` and ``foo.zip#rom.bin`` as the same content."""

    autofix_paths: bool = False
    """Derived: true iff :attr:`base_content_directory` is non-empty."""

    def set_path(self, path: str | None) -> None:
        self.path = path or ""

    def set_base_content_directory(self, path: str | None) -> None:
        """Set the base content directory and update :attr:`autofix_paths`."""
        self.autofix_paths = bool(path)
        self.base_content_directory = path if self.autofix_paths else ""

    def copy(self) -> PlaylistConfig:
        return replace(self)
