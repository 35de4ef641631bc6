"""Loading playlists from disk and keeping the currently cached one.

:func:`init_playlist` is the only supported way to build a
:class:`~content_playlist.core.playlist.Playlist` from a file.  It sniffs
the on-disk format, parses it, and relocates content paths when the
configured base content directory has moved.

:class:`PlaylistCache` holds the one playlist the frontend is currently
browsing.  The cache normally owns its instance; an instance handed in
with :meth:`PlaylistCache.set_external` stays owned by the caller and is
only dropped, never freed, when the cache lets go of it.
"""

from __future__ import annotations

from loguru import logger

from content_playlist.core.core_info import CoreInfoRegistry
from content_playlist.core.file_stream import open_read
from content_playlist.core.json_codec import read_playlist_json
from content_playlist.core.legacy_codec import detect_legacy_format, read_playlist_legacy
from content_playlist.core.path_resolver import replace_base_path
from content_playlist.core.playlist import Playlist
from content_playlist.models.entry import PlaylistEntry
from content_playlist.models.playlist_config import PlaylistConfig


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def read_playlist_file(playlist: Playlist) -> bool:
    """Populate *playlist* from its configured file.

    A missing or empty file leaves the playlist empty and counts as
    success.  Returns ``False`` only when the read ran out of memory.
    """
    stream = open_read(playlist.conf_path)
    if stream is None:
        logger.debug("No playlist file at {}; starting empty", playlist.conf_path)
        return True

    with stream:
        playlist.compressed = stream.is_compressed

        is_legacy = detect_legacy_format(stream)
        if is_legacy is None:
            logger.debug("Playlist file {} is empty", playlist.conf_path)
            return True

        if is_legacy:
            playlist.old_format = True
            ok = read_playlist_legacy(playlist, stream)
        else:
            ok = read_playlist_json(playlist, stream)

    if ok:
        logger.info(
            "Loaded {} entries from {}{}",
            len(playlist), playlist.conf_path, " (legacy format)" if is_legacy else "",
        )
    return ok


def init_playlist(
    config: PlaylistConfig,
    core_info: CoreInfoRegistry | None = None,
) -> Playlist | None:
    """Create a playlist from the file described by *config*.

    Returns ``None`` if the file could not be parsed for lack of memory.
    """
    playlist = Playlist(config, core_info)

    if not read_playlist_file(playlist):
        playlist.free()
        return None

    _autofix_paths(playlist)
    return playlist


class PlaylistCache:
    """Holder for the playlist currently in use by the frontend."""

    def __init__(self, core_info: CoreInfoRegistry | None = None) -> None:
        self._core_info = core_info
        self._playlist: Playlist | None = None

    def get(self) -> Playlist | None:
        return self._playlist

    def init(self, config: PlaylistConfig) -> bool:
        """Load the playlist at ``config.path`` and make it the cached one.

        A file whose format or compression differs from *config* is
        rewritten straight away.  On failure the current instance is kept.
        """
        playlist = init_playlist(config, self._core_info)
        if playlist is None:
            logger.error("Failed to load playlist {}", config.path)
            return False

        if (
            playlist.compressed != playlist.config.compress
            or playlist.old_format != playlist.config.old_format
        ):
            playlist.write_file()

        self.replace(playlist)
        return True

    def set_external(self, playlist: Playlist) -> None:
        """Cache a playlist that remains owned by the caller."""
        self.replace(playlist)
        playlist.cached_external = True

    def replace(self, playlist: Playlist | None) -> None:
        """Cache *playlist*, freeing the previously owned instance."""
        if self._playlist is playlist:
            return
        self.free()
        if playlist is not None:
            playlist.cached_external = False
        self._playlist = playlist

    def take(self) -> Playlist | None:
        """Hand the cached instance to the caller and empty the cache."""
        playlist, self._playlist = self._playlist, None
        if playlist is not None:
            playlist.cached_external = False
        return playlist

    def free(self) -> None:
        playlist, self._playlist = self._playlist, None
        if playlist is None:
            return
        if playlist.cached_external:
            playlist.cached_external = False
        else:
            playlist.free()

    def update_and_write(
        self,
        idx: int,
        entry: PlaylistEntry,
        playlist: Playlist | None = None,
    ) -> bool:
        """Update entry *idx* of *playlist* (default: the cached one) and save."""
        target = playlist if playlist is not None else self._playlist
        if target is None:
            return False
        target.update(idx, entry)
        return target.write_file()


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------

def _autofix_paths(playlist: Playlist) -> None:
    """Move content paths from the stored base directory to the configured one."""
    config = playlist.config
    if not config.autofix_paths:
        return

    new_base = config.base_content_directory
    old_base = playlist.base_content_directory or ""
    if old_base == new_base:
        return

    if old_base:
        for entry in playlist.entries:
            if entry.path:
                entry.path = replace_base_path(entry.path, old_base, new_base)
            if entry.subsystem_roms:
                entry.subsystem_roms = [
                    replace_base_path(rom, old_base, new_base) for rom in entry.subsystem_roms
                ]
        logger.info(
            "Relocated {} entries of {} from {} to {}",
            len(playlist), playlist.conf_path, old_base, new_base,
        )

    playlist.base_content_directory = new_base
    playlist.modified = True
    playlist.write_file()
