"""Equality rules for content paths, core paths and whole entries."""

from __future__ import annotations

from content_playlist.core.core_info import core_file_id_is_equal
from content_playlist.core.path_resolver import (
    get_archive_delim,
    is_compressed_file,
    resolve_realpath,
    strings_equal,
)
from content_playlist.models.entry import CORE_PATH_SENTINELS, PlaylistEntry
from content_playlist.models.playlist_config import PlaylistConfig


def resolve_core_path(core_path: str | None) -> str:
    """Canonicalise a core path, leaving the sentinel values alone."""
    if not core_path:
        return ""
    if core_path in CORE_PATH_SENTINELS:
        return core_path
    return resolve_realpath(core_path)


def path_equal(
    real_path: str | None,
    entry_path: str | None,
    config: PlaylistConfig | None,
) -> bool:
    """Return ``True`` if *real_path* and *entry_path* denote the same content.

    *real_path* must already be canonical (see
    :func:`~content_playlist.core.path_resolver.resolve_realpath`);
    *entry_path* is the value stored in the playlist and is canonicalised
    here.  With ``config.fuzzy_archive_match`` an archive path also matches
    a path to a file inside that archive, in either direction.
    """
    if not real_path or not entry_path or config is None:
        return False

    entry_real_path = resolve_realpath(entry_path)
    if not entry_real_path:
        return False

    if strings_equal(real_path, entry_real_path):
        return True

    if not config.fuzzy_archive_match:
        return False

    # Playlists built by scanning store 'foo.zip#rom.bin', while content
    # launched from the command line usually arrives as plain 'foo.zip'
    real_is_archive = is_compressed_file(real_path)
    entry_is_archive = is_compressed_file(entry_real_path)
    if real_is_archive == entry_is_archive:
        return False

    archive_path = real_path if real_is_archive else entry_real_path
    full_path = entry_real_path if real_is_archive else real_path
    delim = get_archive_delim(full_path)
    if delim < 0:
        return False

    return strings_equal(archive_path, full_path[:delim])


def core_path_equal(
    real_core_path: str | None,
    entry_core_path: str | None,
    config: PlaylistConfig,
) -> bool:
    """Return ``True`` if both core paths refer to the same core.

    When path autofixing is enabled, cores that share a file identity
    (same library name, different directory or extension) also match.
    """
    if not real_core_path or not entry_core_path:
        return False

    entry_real_core_path = resolve_core_path(entry_core_path)
    if not entry_real_core_path:
        return False

    if strings_equal(real_core_path, entry_real_core_path):
        return True

    return config.autofix_paths and core_file_id_is_equal(real_core_path, entry_core_path)


def entries_equal(
    entry_a: PlaylistEntry | None,
    entry_b: PlaylistEntry | None,
    config: PlaylistConfig | None,
) -> bool:
    """Return ``True`` if two entries share content path and core path."""
    if entry_a is None or entry_b is None or config is None:
        return False

    if (
        not entry_a.path
        and not entry_a.core_path
        and not entry_b.path
        and not entry_b.core_path
    ):
        return True

    real_path_a = resolve_realpath(entry_a.path)
    if not path_equal(real_path_a, entry_b.path, config):
        return False

    real_core_path_a = resolve_core_path(entry_a.core_path)
    return core_path_equal(real_core_path_a, entry_b.core_path, config)
