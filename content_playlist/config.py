"""Application configuration management."""

from __future__ import annotations

import json
import platform
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from content_playlist.models.playlist_config import PlaylistConfig

HISTORY_PLAYLIST_NAME = "content_history.lpl"
FAVORITES_PLAYLIST_NAME = "content_favorites.lpl"


def _default_data_dir() -> Path:
    """Return the default data directory for the application."""
    if platform.system() == "Windows":
        return Path.home() / "Documents" / "ContentPlaylist"
    elif platform.system() == "Darwin":
        return Path.home() / "Library" / "Application Support" / "ContentPlaylist"
    else:
        return Path.home() / ".config" / "ContentPlaylist"


_DEFAULT_CONFIG: dict[str, Any] = {
    "playlist_directory": "",
    "content_history_size": 200,
    "content_favorites_size": 200,
    "playlist_compression": False,
    "playlist_use_old_format": False,
    "playlist_fuzzy_archive_match": False,
    "playlist_portable_paths": False,
    "base_content_directory": "",
    "log_dir": "",
}


class Config:
    """Singleton application configuration."""

    _instance: Optional["Config"] = None
    _data: dict[str, Any]
    _path: Path
    _data_dir: Path

    def __new__(cls, config_path: Optional[Path] = None) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[Path] = None) -> None:
        if self._initialized:  # type: ignore[has-type]
            return
        self._initialized = True
        if config_path is not None:
            self._data_dir = Path(config_path).parent
            self._path = Path(config_path)
        else:
            self._data_dir = _default_data_dir()
            self._path = self._data_dir / "settings.json"
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._data = dict(_DEFAULT_CONFIG)
        self._load()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def playlist_directory(self) -> Path:
        p = self._data.get("playlist_directory", "")
        if p:
            return Path(p)
        return self._data_dir / "playlists"

    @property
    def content_history_size(self) -> int:
        return max(int(self._data.get("content_history_size", 200)), 0)

    @property
    def content_favorites_size(self) -> int:
        """Favourites capacity; a negative value means unlimited."""
        size = int(self._data.get("content_favorites_size", 200))
        return size if size >= 0 else 2**31 - 1

    @property
    def playlist_compression(self) -> bool:
        return bool(self._data.get("playlist_compression", False))

    @property
    def playlist_use_old_format(self) -> bool:
        return bool(self._data.get("playlist_use_old_format", False))

    @property
    def playlist_fuzzy_archive_match(self) -> bool:
        return bool(self._data.get("playlist_fuzzy_archive_match", False))

    @property
    def playlist_portable_paths(self) -> bool:
        return bool(self._data.get("playlist_portable_paths", False))

    @property
    def base_content_directory(self) -> str:
        return self._data.get("base_content_directory", "") or ""

    @property
    def log_dir(self) -> Path:
        p = self._data.get("log_dir", "")
        if p:
            return Path(p)
        return self._data_dir / "logs"

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._save()

    def build_playlist_config(self, name: str, capacity: int | None = None) -> PlaylistConfig:
        """Build the :class:`PlaylistConfig` for playlist file *name*.

        History and favourites take their capacity from the matching
        setting; other playlists default to the history size.  The base
        content directory is only applied when portable paths are enabled.
        """
        if capacity is None:
            if name == FAVORITES_PLAYLIST_NAME:
                capacity = self.content_favorites_size
            else:
                capacity = self.content_history_size

        config = PlaylistConfig(
            capacity=capacity,
            old_format=self.playlist_use_old_format,
            compress=self.playlist_compression,
            fuzzy_archive_match=self.playlist_fuzzy_archive_match,
        )
        config.set_path(str(self.playlist_directory / name))
        if self.playlist_portable_paths:
            config.set_base_content_directory(self.base_content_directory)
        return config

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load(self) -> None:
        if self._path.exists():
            try:
                with open(self._path, "r", encoding="utf-8") as f:
                    saved = json.load(f)
                self._data.update(saved)
                logger.info("Configuration loaded from {}", self._path)
            except (OSError, ValueError) as e:
                logger.warning("Failed to load config, using defaults: {}", e)

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=4, ensure_ascii=False)
        except OSError as e:
            logger.error("Failed to save config: {}", e)

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None
