"""
Favorite products, kept on the device rather than in the database.

Screens only see the ``FavoriteStore`` interface; the session state decides
which implementation backs it.
"""

from __future__ import annotations

import json
import os
from typing import Dict, Protocol, Set

from utils.logger import get_logger

_logger = get_logger(__name__)


class FavoriteStore(Protocol):
    def get_favorite(self, pid: int) -> bool: ...

    def set_favorite(self, pid: int, favorite: bool) -> None: ...


class MemoryFavoriteStore:
    def __init__(self) -> None:
        self._ids: Set[int] = set()

    def get_favorite(self, pid: int) -> bool:
        return pid in self._ids

    def set_favorite(self, pid: int, favorite: bool) -> None:
        if favorite:
            self._ids.add(pid)
        else:
            self._ids.discard(pid)

    def favorite_ids(self) -> Set[int]:
        return set(self._ids)


class JsonFavoriteStore(MemoryFavoriteStore):
    """
    Favorites persisted to a small JSON file: {"fav_<pid>": "1", ...}.
    An unreadable file counts as "no favorites", same as a fresh device.
    """

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = path
        self._load()

    def _load(self) -> None:
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw: Dict[str, str] = json.load(f)
        except (OSError, ValueError) as exc:
            _logger.warning(f"Ignoring unreadable favorites file {self.path}: {exc}")
            return
        for key, val in raw.items():
            if key.startswith("fav_") and val == "1" and key[4:].isdigit():
                self._ids.add(int(key[4:]))

    def _save(self) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({f"fav_{pid}": "1" for pid in sorted(self._ids)}, f, indent=2)

    def set_favorite(self, pid: int, favorite: bool) -> None:
        super().set_favorite(pid, favorite)
        self._save()


def toggle_favorite(store: FavoriteStore, pid: int) -> bool:
    """Flip a product's favorite flag and return the new value."""
    new_value = not store.get_favorite(pid)
    store.set_favorite(pid, new_value)
    return new_value
