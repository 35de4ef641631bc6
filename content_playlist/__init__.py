"""Persistent, MRU-ordered content playlists for a media frontend."""

from content_playlist.core.lifecycle import PlaylistCache, init_playlist
from content_playlist.core.playlist import Playlist
from content_playlist.models.entry import PlaylistEntry, RuntimeStatus
from content_playlist.models.modes import LabelDisplayMode, SortMode, ThumbnailId, ThumbnailMode
from content_playlist.models.playlist_config import PlaylistConfig

__version__ = "1.0.0"

__all__ = [
    "LabelDisplayMode",
    "Playlist",
    "PlaylistCache",
    "PlaylistConfig",
    "PlaylistEntry",
    "RuntimeStatus",
    "SortMode",
    "ThumbnailId",
    "ThumbnailMode",
    "init_playlist",
]
