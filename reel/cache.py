"""Cache module for storing TMDB lookups locally."""
import json
import logging
import threading
from pathlib import Path
from typing import Any


CACHE_FILE = ".reel_cache.json"

log = logging.getLogger(__name__)


class Cache:
    """Local JSON cache for TMDB lookups.

    Shared by the worker threads of a batch, so every access goes
    through one lock.
    """

    def __init__(self, cache_dir: Path | None = None):
        """
        Initialize the cache.

        Args:
            cache_dir: Directory to store cache file. Defaults to current directory.
        """
        if cache_dir is None:
            cache_dir = Path.cwd()
        self.cache_path = Path(cache_dir) / CACHE_FILE
        self._lock = threading.Lock()
        self._cache: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        """Load cache from disk."""
        if self.cache_path.exists():
            try:
                with open(self.cache_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    return {**self._empty_cache(), **data}
            except (json.JSONDecodeError, OSError) as e:
                log.warning("Ignoring unreadable cache %s: %s", self.cache_path, e)
        return self._empty_cache()

    def _empty_cache(self) -> dict[str, Any]:
        """Return empty cache structure."""
        return {
            "searches": {},
            "seasons": {},
            "episodes": {},
        }

    def _save(self) -> None:
        """Save cache to disk. Caller holds the lock."""
        try:
            with open(self.cache_path, 'w', encoding='utf-8') as f:
                json.dump(self._cache, f, indent=2, ensure_ascii=False)
        except OSError as e:
            log.warning("Could not write cache %s: %s", self.cache_path, e)

    def _normalize_key(self, key: str) -> str:
        """Normalize a string for use as cache key."""
        return key.lower().strip()

    def _search_key(self, kind: str, query: str, year: int | None) -> str:
        return f"{kind}:{self._normalize_key(query)}:{year or ''}"

    def get_search(self, kind: str, query: str, year: int | None = None) -> list[dict] | None:
        """
        Get cached search results.

        Args:
            kind: 'movie' or 'episode'
            query: The search title
            year: Optional year filter

        Returns:
            Cached result dicts in provider order, None if not cached
        """
        with self._lock:
            return self._cache["searches"].get(self._search_key(kind, query, year))

    def set_search(self, kind: str, query: str, year: int | None, results: list[dict]) -> None:
        """Cache search results for a query."""
        with self._lock:
            self._cache["searches"][self._search_key(kind, query, year)] = results
            self._save()

    def get_seasons(self, show_id: int) -> dict[int, int] | None:
        """Get cached season -> episode count mapping for a show."""
        with self._lock:
            cached = self._cache["seasons"].get(str(show_id))
        if cached is None:
            return None
        # JSON object keys are always strings
        return {int(season): count for season, count in cached.items()}

    def set_seasons(self, show_id: int, seasons: dict[int, int]) -> None:
        """Cache the season layout of a show."""
        with self._lock:
            self._cache["seasons"][str(show_id)] = {str(s): c for s, c in seasons.items()}
            self._save()

    def get_episode(self, show_id: int, season: int, episode: int) -> dict | None:
        """
        Get cached episode details.

        Args:
            show_id: TMDB series ID
            season: Season number
            episode: Episode number

        Returns:
            Cached episode data if found, None otherwise
        """
        key = f"{show_id}:s{season}e{episode}"
        with self._lock:
            return self._cache["episodes"].get(key)

    def set_episode(self, show_id: int, season: int, episode: int, result: dict) -> None:
        """Cache episode details."""
        key = f"{show_id}:s{season}e{episode}"
        with self._lock:
            self._cache["episodes"][key] = result
            self._save()

    def clear(self) -> None:
        """Clear all cached data."""
        with self._lock:
            self._cache = self._empty_cache()
            self._save()
