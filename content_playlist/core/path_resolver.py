"""Cross-platform path helpers used to compare playlist paths.

Playlist files are edited by hand and shared between machines, so the
same piece of content can show up under several spellings:

* relative vs. absolute paths, or paths going through a symlink,
* different letter case on case-insensitive file systems (Windows),
* ``/games/foo.zip`` vs. ``/games/foo.zip#rom.bin``: an archive and a
  file *inside* that archive, separated by the archive delimiter ``#``.

This module only answers the low-level questions (what is the canonical
form, is this an archive, where is the delimiter).  The matching policy
lives in :mod:`content_playlist.core.equality`.

Usage::

    from content_playlist.core.path_resolver import resolve_realpath, get_archive_delim

    real = resolve_realpath("roms/../roms/game.sfc")   # "/home/me/roms/game.sfc"
    get_archive_delim("/games/foo.zip#rom.bin")        # 14
"""

from __future__ import annotations

import os
import platform

from loguru import logger

CASE_INSENSITIVE_FS = platform.system() == "Windows"

WINDOWS_PATH_DELIMITER = "\\"
POSIX_PATH_DELIMITER = "/"
LOCAL_PATH_DELIMITER = (
    WINDOWS_PATH_DELIMITER if platform.system() == "Windows" else POSIX_PATH_DELIMITER
)

ARCHIVE_DELIMITER = "#"
ARCHIVE_EXTENSIONS = (".zip", ".7z", ".apk")


# ---------------------------------------------------------------------------
# Canonical form
# ---------------------------------------------------------------------------

def resolve_realpath(path: str | None) -> str:
    """Return the canonical absolute form of *path*.

    Symlinks and ``.``/``..`` segments are resolved.  If the path cannot
    be resolved (it does not exist, or the OS refuses) it is returned
    unchanged.  Letter case is left alone; see :func:`strings_equal`.
    """
    if not path:
        return ""
    try:
        return os.path.realpath(path, strict=True)
    except (OSError, ValueError) as e:
        logger.trace("Cannot resolve {}: {}", path, e)
        return path


def strings_equal(a: str | None, b: str | None) -> bool:
    """Compare two path strings the way the local file system would.

    ``None`` never equals anything, not even another ``None``.
    """
    if a is None or b is None:
        return False
    if CASE_INSENSITIVE_FS:
        return a.lower() == b.lower()
    return a == b


# ---------------------------------------------------------------------------
# Archive paths
# ---------------------------------------------------------------------------

def is_compressed_file(path: str | None) -> bool:
    """Return ``True`` if *path* names an archive file itself.

    ``foo.zip`` is an archive; ``foo.zip#rom.bin`` is not (its extension
    is ``.bin``), it is a file inside an archive.
    """
    if not path:
        return False
    ext = os.path.splitext(path)[1].lower()
    return ext in ARCHIVE_EXTENSIONS


def get_archive_delim(path: str | None) -> int:
    """Return the index of the archive delimiter in *path*, or ``-1``.

    The delimiter only counts when it directly follows a known archive
    extension, e.g. ``.zip#``.  The earliest such occurrence wins.
    """
    if not path:
        return -1
    lowered = path.lower()
    found = -1
    for ext in ARCHIVE_EXTENSIONS:
        idx = lowered.find(ext + ARCHIVE_DELIMITER)
        if idx < 0:
            continue
        delim = idx + len(ext)
        if found < 0 or delim < found:
            found = delim
    return found


# ---------------------------------------------------------------------------
# Name helpers
# ---------------------------------------------------------------------------

def _last_component(path: str) -> str:
    cut = max(path.rfind(POSIX_PATH_DELIMITER), path.rfind(WINDOWS_PATH_DELIMITER))
    return path[cut + 1:]


def path_basename(path: str | None) -> str:
    """Last path component; for ``archive#inner`` paths, the inner file name."""
    if not path:
        return ""
    delim = get_archive_delim(path)
    if delim >= 0:
        return _last_component(path[delim + 1:])
    return _last_component(path)


def basename_noext(path: str | None) -> str:
    base = path_basename(path)
    dot = base.rfind(".")
    return base[:dot] if dot > 0 else base


def short_pathname_representation(path: str | None) -> str:
    """Short display name for a content path (file name without extension)."""
    return basename_noext(path)


# ---------------------------------------------------------------------------
# Relocation
# ---------------------------------------------------------------------------

def replace_base_path(path: str, old_base: str, new_base: str) -> str:
    """Move *path* from *old_base* to *new_base*.

    Paths outside *old_base* are returned untouched.  Rewritten paths get
    their delimiters converted to the local file system's, since the old
    base may come from another OS.
    """
    if not old_base or not path.startswith(old_base):
        return path
    out = new_base + path[len(old_base):]
    if LOCAL_PATH_DELIMITER == WINDOWS_PATH_DELIMITER:
        return out.replace(POSIX_PATH_DELIMITER, WINDOWS_PATH_DELIMITER)
    return out.replace(WINDOWS_PATH_DELIMITER, POSIX_PATH_DELIMITER)
