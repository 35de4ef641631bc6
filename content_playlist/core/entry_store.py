"""Ordered entry storage backing a playlist."""

from __future__ import annotations

from typing import Callable, Iterator

from loguru import logger

from content_playlist.models.entry import PlaylistEntry


class EntryStore:
    """List-backed, index-addressed sequence of playlist entries.

    Position 0 is the most recently used entry.  Capacity is not enforced
    here; that is the playlist's job.  Mutations that fail to allocate
    leave the store untouched and set :attr:`out_of_memory`.

    Indices are only valid until the next mutation.
    """

    def __init__(self) -> None:
        self._entries: list[PlaylistEntry] = []
        self.out_of_memory = False

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PlaylistEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> PlaylistEntry:
        return self._entries[index]

    def get(self, index: int) -> PlaylistEntry | None:
        """Return the entry at *index*, or ``None`` when out of range."""
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def insert_front(self, entry: PlaylistEntry) -> bool:
        try:
            self._entries.insert(0, entry)
        except MemoryError:
            return self._oom("insert entry")
        return True

    def append(self, entry: PlaylistEntry) -> bool:
        try:
            self._entries.append(entry)
        except MemoryError:
            return self._oom("append entry")
        return True

    def delete_at(self, index: int) -> bool:
        if not 0 <= index < len(self._entries):
            return False
        del self._entries[index]
        return True

    def move_to_front(self, index: int) -> bool:
        """Move the entry at *index* to position 0, shifting the others back."""
        if not 0 <= index < len(self._entries):
            return False
        if index == 0:
            return True
        entry = self._entries.pop(index)
        try:
            self._entries.insert(0, entry)
        except MemoryError:
            self._entries.insert(index, entry)
            return self._oom("move entry")
        return True

    def evict_last(self) -> PlaylistEntry | None:
        if not self._entries:
            return None
        return self._entries.pop()

    def clear(self) -> None:
        self._entries.clear()

    def sort(self, key: Callable[[PlaylistEntry], str]) -> None:
        """Stable in-place sort; equal keys keep their relative order."""
        self._entries.sort(key=key)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _oom(self, action: str) -> bool:
        self.out_of_memory = True
        logger.error("Out of memory: could not {} ({} entries)", action, len(self._entries))
        return False
