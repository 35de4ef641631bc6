"""Playlist: an MRU-ordered, capacity-bounded collection of entries.

The playlist owns its entries and a private copy of its configuration.
Every change that affects what would be written to disk sets
:attr:`Playlist.modified`; :meth:`Playlist.write_file` only touches the
disk when that flag is set or the on-disk format/compression no longer
matches the configuration.

Use :func:`content_playlist.core.lifecycle.init_playlist` to create a
playlist from a file.
"""

from __future__ import annotations

from loguru import logger

from content_playlist.core import equality
from content_playlist.core.core_info import CoreInfo, CoreInfoRegistry
from content_playlist.core.entry_store import EntryStore
from content_playlist.core.file_stream import open_write
from content_playlist.core.json_codec import write_playlist_json, write_runtime_json
from content_playlist.core.legacy_codec import write_playlist_legacy
from content_playlist.core.path_resolver import (
    basename_noext,
    path_basename,
    resolve_realpath,
    short_pathname_representation,
    strings_equal,
)
from content_playlist.models.entry import (
    CORE_PATH_DETECT,
    LAST_PLAYED_FIELDS,
    RUNTIME_FIELDS,
    PlaylistEntry,
)
from content_playlist.models.modes import (
    LabelDisplayMode,
    SortMode,
    ThumbnailId,
    ThumbnailMode,
)
from content_playlist.models.playlist_config import PlaylistConfig

HISTORY_PLAYLIST_SUFFIX = "_history.lpl"
FAVORITES_PLAYLIST_NAME = "content_favorites.lpl"

_UPDATE_FIELDS = ("path", "label", "core_path", "core_name", "db_name", "crc32")


class Playlist:
    """Ordered collection of :class:`PlaylistEntry` (index 0 = most recent)."""

    def __init__(
        self,
        config: PlaylistConfig,
        core_info: CoreInfoRegistry | None = None,
    ) -> None:
        self._config = config.copy()
        self._core_info = core_info
        self._entries = EntryStore()

        self.default_core_path: str | None = None
        self.default_core_name: str | None = None
        self.base_content_directory: str | None = None

        self.label_display_mode = LabelDisplayMode.DEFAULT
        self.right_thumbnail_mode = ThumbnailMode.DEFAULT
        self.left_thumbnail_mode = ThumbnailMode.DEFAULT
        self.sort_mode = SortMode.DEFAULT

        self.modified = False
        self.old_format = False
        self.compressed = False
        self.cached_external = False

    # ------------------------------------------------------------------
    # Basic accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> PlaylistConfig:
        return self._config

    @property
    def entries(self) -> EntryStore:
        return self._entries

    @property
    def conf_path(self) -> str:
        return self._config.path

    @property
    def capacity(self) -> int:
        return self._config.capacity

    @property
    def size(self) -> int:
        return len(self._entries)

    @property
    def out_of_memory(self) -> bool:
        return self._entries.out_of_memory

    def __len__(self) -> int:
        return len(self._entries)

    def get_index(self, idx: int) -> PlaylistEntry | None:
        return self._entries.get(idx)

    def get_crc32(self, idx: int) -> str | None:
        entry = self._entries.get(idx)
        return entry.crc32 if entry else None

    def get_db_name(self, idx: int) -> str | None:
        """Return the database name of an entry.

        Entries without one fall back to the playlist file name, except
        for history and favourites playlists which mix content from every
        database.
        """
        entry = self._entries.get(idx)
        if entry is None:
            return None
        if entry.db_name:
            return entry.db_name

        conf_basename = path_basename(self._config.path)
        if (
            conf_basename
            and not conf_basename.endswith(HISTORY_PLAYLIST_SUFFIX)
            and conf_basename != FAVORITES_PLAYLIST_NAME
        ):
            return conf_basename
        return None

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    def push(self, entry: PlaylistEntry) -> bool:
        """Push *entry* to the top of the playlist.

        If an equivalent entry already exists it is moved to the top and
        any blank label/crc32/db_name is filled in from *entry*.  Returns
        ``True`` when the playlist changed.
        """
        if not entry.core_path:
            logger.error("Cannot push an entry with an empty core path into {}", self.conf_path)
            return False

        real_path = resolve_realpath(entry.path)
        real_core_path = equality.resolve_core_path(entry.core_path)
        if not real_core_path:
            logger.error("Cannot push an entry with an empty core path into {}", self.conf_path)
            return False

        core_name = entry.core_name or basename_noext(real_core_path)
        if not core_name:
            logger.error("Cannot push an entry with an empty core name into {}", self.conf_path)
            return False

        for i, existing in enumerate(self._entries):
            if not self._same_content(real_path, real_core_path, existing):
                continue
            if not self._same_subsystem(entry, existing):
                continue

            # Content first launched from a file browser lacks some
            # metadata; fill it in now that a richer entry arrived
            updated = False
            if not existing.label and entry.label:
                existing.label = entry.label
                updated = True
            if not existing.crc32 and entry.crc32:
                existing.crc32 = entry.crc32
                updated = True
            if not existing.db_name and entry.db_name:
                existing.db_name = entry.db_name
                updated = True

            if i == 0 and not updated:
                return False
            if i > 0 and not self._entries.move_to_front(i):
                return False

            self.modified = True
            return True

        new_entry = PlaylistEntry(
            path=real_path or None,
            label=entry.label or None,
            core_path=real_core_path,
            core_name=core_name,
            db_name=entry.db_name or None,
            crc32=entry.crc32 or None,
            subsystem_ident=entry.subsystem_ident or None,
            subsystem_name=entry.subsystem_name or None,
            subsystem_roms=(
                list(entry.subsystem_roms) if entry.subsystem_roms is not None else None
            ),
        )
        if not self._insert_new(new_entry):
            return False

        self.modified = True
        return True

    def push_runtime(self, entry: PlaylistEntry) -> bool:
        """Push an entry that only carries path, core and play time.

        Used by runtime-log playlists; matching ignores subsystem and
        label fields.
        """
        if not entry.core_path:
            logger.error("Cannot push an entry with an empty core path into {}", self.conf_path)
            return False

        real_path = resolve_realpath(entry.path)
        real_core_path = equality.resolve_core_path(entry.core_path)
        if not real_core_path:
            logger.error("Cannot push an entry with an empty core path into {}", self.conf_path)
            return False

        for i, existing in enumerate(self._entries):
            if not self._same_content(real_path, real_core_path, existing):
                continue
            if i == 0:
                return False
            if not self._entries.move_to_front(i):
                return False
            self.modified = True
            return True

        new_entry = PlaylistEntry(
            path=real_path or None,
            core_path=real_core_path,
            runtime_status=entry.runtime_status,
            runtime_str=entry.runtime_str or None,
            last_played_str=entry.last_played_str or None,
        )
        for name in RUNTIME_FIELDS + LAST_PLAYED_FIELDS:
            setattr(new_entry, name, getattr(entry, name))

        if not self._insert_new(new_entry):
            return False

        self.modified = True
        return True

    def push_and_write(self, entry: PlaylistEntry) -> bool:
        """Push *entry* and save the playlist if it changed."""
        if not self.push(entry):
            return False
        return self.write_file()

    def _same_content(self, real_path: str, real_core_path: str, existing: PlaylistEntry) -> bool:
        # Core name can change while still being the same core,
        # so only the core path is compared
        equal_path = (not real_path and not existing.path) or equality.path_equal(
            real_path, existing.path, self._config
        )
        if not equal_path:
            return False
        return equality.core_path_equal(real_core_path, existing.core_path, self._config)

    def _same_subsystem(self, entry: PlaylistEntry, existing: PlaylistEntry) -> bool:
        for name in ("subsystem_ident", "subsystem_name"):
            new_value = getattr(entry, name)
            old_value = getattr(existing, name)
            if bool(new_value) != bool(old_value):
                return False
            if new_value and new_value != old_value:
                return False

        new_roms = entry.subsystem_roms or []
        old_roms = existing.subsystem_roms or []
        if not new_roms and not old_roms:
            return True
        if len(new_roms) != len(old_roms):
            return False
        for new_rom, old_rom in zip(new_roms, old_roms):
            if not equality.path_equal(resolve_realpath(new_rom), old_rom, self._config):
                return False
        return True

    def _insert_new(self, entry: PlaylistEntry) -> bool:
        capacity = self._config.capacity
        if capacity == 0:
            logger.debug("Playlist {} has zero capacity; push ignored", self.conf_path)
            return False

        if len(self._entries) >= capacity:
            evicted = self._entries.evict_last()
            logger.debug("Evicted {} from {}", evicted.path if evicted else None, self.conf_path)

        return self._entries.insert_front(entry)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, idx: int, update_entry: PlaylistEntry) -> None:
        """Overwrite the text fields of entry *idx* with every set field of
        *update_entry* (``None`` fields are left alone)."""
        entry = self._entries.get(idx)
        if entry is None:
            return

        for name in _UPDATE_FIELDS:
            value = getattr(update_entry, name)
            if value is not None and value != getattr(entry, name):
                setattr(entry, name, value)
                self.modified = True

    def update_runtime(
        self,
        idx: int,
        update_entry: PlaylistEntry,
        register_update: bool = True,
    ) -> None:
        """Overwrite the path, core and play-time fields of entry *idx*.

        With ``register_update=False`` the entry changes but
        :attr:`modified` is left untouched, so frequent play-time ticks
        do not force a rewrite of the file.
        """
        entry = self._entries.get(idx)
        if entry is None:
            return

        changed = False
        for name in ("path", "core_path", "runtime_str", "last_played_str"):
            value = getattr(update_entry, name)
            if value is not None and value != getattr(entry, name):
                setattr(entry, name, value)
                changed = True

        for name in ("runtime_status",) + RUNTIME_FIELDS + LAST_PLAYED_FIELDS:
            value = getattr(update_entry, name)
            if value != getattr(entry, name):
                setattr(entry, name, value)
                changed = True

        if changed and register_update:
            self.modified = True

    # ------------------------------------------------------------------
    # Delete / lookup
    # ------------------------------------------------------------------

    def delete_index(self, idx: int) -> None:
        if self._entries.delete_at(idx):
            self.modified = True

    def delete_by_path(self, search_path: str | None) -> None:
        """Delete every entry whose content path matches *search_path*."""
        if not search_path:
            return
        real_search_path = resolve_realpath(search_path)

        i = 0
        while i < len(self._entries):
            if equality.path_equal(real_search_path, self._entries[i].path, self._config):
                # following entries shift up; re-check the same index
                self.delete_index(i)
            else:
                i += 1

    def get_index_by_path(self, search_path: str | None) -> PlaylistEntry | None:
        """Return the first entry whose content path matches, or ``None``."""
        if not search_path:
            return None
        real_search_path = resolve_realpath(search_path)
        for entry in self._entries:
            if equality.path_equal(real_search_path, entry.path, self._config):
                return entry
        return None

    def entry_exists(self, path: str | None) -> bool:
        return self.get_index_by_path(path) is not None

    def index_is_valid(self, idx: int, path: str | None, core_path: str | None) -> bool:
        """Cheap check that entry *idx* still is the (path, core) pair a
        caller cached earlier.  No canonicalisation is done."""
        entry = self._entries.get(idx)
        if entry is None or entry.path is None or path is None:
            return False
        if entry.path != path:
            return False
        entry_core_file = path_basename(entry.core_path)
        core_file = path_basename(core_path)
        return bool(entry_core_file) and strings_equal(entry_core_file, core_file)

    def entries_equal(self, entry_a: PlaylistEntry, entry_b: PlaylistEntry) -> bool:
        return equality.entries_equal(entry_a, entry_b, self._config)

    # ------------------------------------------------------------------
    # Sorting
    # ------------------------------------------------------------------

    @staticmethod
    def _sort_key(entry: PlaylistEntry) -> str:
        # Same fallback chain the menu uses to display unlabelled entries
        if entry.label:
            label = entry.label
        elif entry.path:
            label = short_pathname_representation(entry.path)
        else:
            label = entry.core_name or ""
        return label.lower()

    def sort(self) -> None:
        """Sort entries alphabetically by display label.

        Does nothing when :attr:`sort_mode` is ``OFF``.  The sort is
        stable: entries with equal labels keep their relative order.
        """
        if self.sort_mode == SortMode.OFF or not len(self._entries):
            return
        self._entries.sort(self._sort_key)

    # ------------------------------------------------------------------
    # Default core and display preferences
    # ------------------------------------------------------------------

    def set_default_core_path(self, core_path: str | None) -> None:
        if not core_path:
            return
        real_core_path = equality.resolve_core_path(core_path)
        if not real_core_path:
            return
        if self.default_core_path != real_core_path:
            self.default_core_path = real_core_path
            self.modified = True

    def set_default_core_name(self, core_name: str | None) -> None:
        if not core_name:
            return
        if self.default_core_name != core_name:
            self.default_core_name = core_name
            self.modified = True

    def set_label_display_mode(self, mode: LabelDisplayMode) -> None:
        if self.label_display_mode != mode:
            self.label_display_mode = LabelDisplayMode(mode)
            self.modified = True

    def get_thumbnail_mode(self, thumbnail_id: ThumbnailId) -> ThumbnailMode:
        if thumbnail_id == ThumbnailId.RIGHT:
            return self.right_thumbnail_mode
        if thumbnail_id == ThumbnailId.LEFT:
            return self.left_thumbnail_mode
        return ThumbnailMode.DEFAULT

    def set_thumbnail_mode(self, thumbnail_id: ThumbnailId, mode: ThumbnailMode) -> None:
        if thumbnail_id == ThumbnailId.RIGHT:
            self.right_thumbnail_mode = ThumbnailMode(mode)
        elif thumbnail_id == ThumbnailId.LEFT:
            self.left_thumbnail_mode = ThumbnailMode(mode)
        else:
            return
        self.modified = True

    def set_sort_mode(self, mode: SortMode) -> None:
        if self.sort_mode != mode:
            self.sort_mode = SortMode(mode)
            self.modified = True

    # ------------------------------------------------------------------
    # Core info
    # ------------------------------------------------------------------

    @staticmethod
    def entry_has_core(entry: PlaylistEntry | None) -> bool:
        """``True`` if *entry* is associated with an actual core (not DETECT)."""
        return bool(
            entry is not None
            and entry.core_path
            and entry.core_name
            and entry.core_path != CORE_PATH_DETECT
            and entry.core_name != CORE_PATH_DETECT
        )

    def entry_get_core_info(self, entry: PlaylistEntry | None) -> CoreInfo | None:
        if self._core_info is None or not self.entry_has_core(entry):
            return None
        return self._core_info.find(entry.core_path)  # type: ignore[union-attr]

    def get_default_core_info(self) -> CoreInfo | None:
        if (
            self._core_info is None
            or not self.default_core_path
            or not self.default_core_name
            or self.default_core_path == CORE_PATH_DETECT
            or self.default_core_name == CORE_PATH_DETECT
        ):
            return None
        return self._core_info.find(self.default_core_path)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def needs_write(self) -> bool:
        return (
            self.modified
            or self.compressed != self._config.compress
            or self.old_format != self._config.old_format
        )

    def write_file(self) -> bool:
        """Save the playlist if it changed or its on-disk form is outdated.

        Returns ``True`` if the file was written.
        """
        if not self.needs_write():
            return False

        stream = open_write(self._config.path, compress=self._config.compress)
        if stream is None:
            logger.error("Failed to write to playlist file: {}", self._config.path)
            return False

        try:
            with stream:
                compressed = stream.is_compressed
                if self._config.old_format:
                    write_playlist_legacy(self, stream)
                else:
                    # whitespace is pointless inside a compressed file
                    write_playlist_json(self, stream, compact=compressed)
        except OSError as e:
            logger.error("Failed to write to playlist file {}: {}", self._config.path, e)
            return False

        self.old_format = self._config.old_format
        self.modified = False
        self.compressed = compressed
        logger.info("Written to playlist file: {}", self._config.path)
        return True

    def write_runtime_file(self) -> bool:
        """Save the runtime sidecar (path, core, play time) if modified."""
        if not self.modified:
            return False

        stream = open_write(self._config.path)
        if stream is None:
            logger.error("Failed to write to playlist file: {}", self._config.path)
            return False

        try:
            with stream:
                write_runtime_json(self, stream)
        except OSError as e:
            logger.error("Failed to write to playlist file {}: {}", self._config.path, e)
            return False

        self.modified = False
        self.old_format = False
        self.compressed = False
        logger.info("Written to playlist file: {}", self._config.path)
        return True

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Drop every entry.  Does not mark the playlist as modified."""
        self._entries.clear()

    def free(self) -> None:
        """Release all entries and default-core strings."""
        self.default_core_path = None
        self.default_core_name = None
        self.base_content_directory = None
        self._entries.clear()
