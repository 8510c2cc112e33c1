"""TMDB API client module."""
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any

import requests
from dotenv import load_dotenv

from .cache import Cache
from .cancellation import CancellationToken, Cancelled
from .models import CandidateRecord, EpisodeFacet, MediaKind
from .provider import MetadataProvider, ProviderError


TMDB_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_TIMEOUT = 10
RATE_LIMIT_DELAY = 0.25  # 250ms between requests to avoid rate limiting
DEFAULT_LANGUAGE = "en-US"
# Shows whose season layout is fetched after a search
SEASON_LOOKUP_LIMIT = 3

API_KEY_VARIABLES = ("TMDB_API_KEY", "REEL_TMDB_API_KEY")

log = logging.getLogger(__name__)


def _api_key_from_env() -> str | None:
    for name in API_KEY_VARIABLES:
        value = os.environ.get(name)
        if value:
            return value
    return None


def load_api_key() -> str | None:
    """
    Load TMDB API key from environment or .env file.

    Priority:
    1. TMDB_API_KEY / REEL_TMDB_API_KEY environment variables
    2. .env file in current directory
    3. .env file in user home directory

    Returns:
        API key string or None if not found
    """
    api_key = _api_key_from_env()
    if api_key:
        return api_key

    for env_path in (Path.cwd() / ".env", Path.home() / ".env"):
        if env_path.exists():
            load_dotenv(env_path)
            api_key = _api_key_from_env()
            if api_key:
                return api_key

    return None


def _year_from_date(date: str | None) -> int | None:
    if date and len(date) >= 4 and date[:4].isdigit():
        return int(date[:4])
    return None


class TMDBError(ProviderError):
    """Exception raised for TMDB configuration errors."""
    pass


class TMDBClient(MetadataProvider):
    """Client for TMDB API."""

    def __init__(
        self,
        api_key: str | None = None,
        cache: Cache | None = None,
        language: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
        season_lookup_limit: int = SEASON_LOOKUP_LIMIT,
    ):
        """
        Initialize TMDB client.

        Args:
            api_key: TMDB API key. If not provided, attempts to load from env/.env.
            cache: Cache instance for storing lookups.
            language: TMDB API language tag (e.g. "en-US"). Falls back to
                      DEFAULT_LANGUAGE when *None*.
            timeout: Upper bound in seconds for a single HTTP request.
            session: requests session to reuse (a new one by default).
            season_lookup_limit: How many top show candidates get their
                                 season layout fetched after a search.

        Raises:
            TMDBError: If API key is not found
        """
        self.api_key = api_key or load_api_key()
        if not self.api_key:
            raise TMDBError(
                "TMDB API key not found.\n"
                "Set it using one of these methods:\n"
                "  1. Environment variable: export TMDB_API_KEY=your_key\n"
                "  2. Create a .env file with: TMDB_API_KEY=your_key\n"
                "Get your free API key at: https://www.themoviedb.org/settings/api"
            )
        self.cache = cache or Cache()
        self.language = language or DEFAULT_LANGUAGE
        self.timeout = timeout
        self.session = session or requests.Session()
        self.season_lookup_limit = season_lookup_limit
        self._rate_lock = threading.Lock()
        self._last_request_time = 0.0
        log.debug("Using TMDB language: %s", self.language)

    def _rate_limit(self, cancel: CancellationToken) -> None:
        """Space requests RATE_LIMIT_DELAY apart across all threads."""
        with self._rate_lock:
            elapsed = time.monotonic() - self._last_request_time
            if elapsed < RATE_LIMIT_DELAY and cancel.wait(RATE_LIMIT_DELAY - elapsed):
                raise Cancelled("Operation cancelled")
            self._last_request_time = time.monotonic()

    def _request(
        self,
        endpoint: str,
        cancel: CancellationToken,
        params: dict | None = None,
        allow_missing: bool = False,
    ) -> dict | None:
        """
        Make a request to the TMDB API.

        Args:
            endpoint: API endpoint (e.g., '/search/movie')
            cancel: Token bounding how long the call may take
            params: Query parameters
            allow_missing: Return None instead of failing on HTTP 404

        Returns:
            JSON response (None for a permitted 404)

        Raises:
            ProviderError: On transport errors or unexpected responses
            Cancelled: When the token is set before or during the call
        """
        cancel.raise_if_cancelled()
        self._rate_limit(cancel)

        timeout = self.timeout
        remaining = cancel.remaining()
        if remaining is not None:
            if remaining <= 0:
                raise Cancelled("Deadline reached")
            timeout = min(timeout, remaining)

        url = f"{TMDB_BASE_URL}{endpoint}"
        all_params = {
            "api_key": self.api_key,
            "language": self.language,
            **(params or {})
        }

        # Log the request (hide API key)
        log_params = {k: v for k, v in all_params.items() if k != "api_key"}
        log.debug("GET %s params=%s", endpoint, log_params)

        try:
            response = self.session.get(url, params=all_params, timeout=timeout)
        except requests.exceptions.Timeout as e:
            cancel.raise_if_cancelled()
            raise ProviderError(f"TMDB request timed out: {endpoint}") from e
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"TMDB request failed: {e}") from e

        cancel.raise_if_cancelled()
        log.debug("Response status: %s", response.status_code)

        if response.status_code == 404 and allow_missing:
            return None
        if response.status_code == 401:
            raise ProviderError("TMDB rejected the API key")
        try:
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as e:
            raise ProviderError(f"TMDB error: {e}") from e
        except ValueError as e:
            raise ProviderError(f"Invalid TMDB response for {endpoint}") from e

    def verify_api_key(self) -> bool:
        """Check the key against the configuration endpoint."""
        try:
            self._request("/configuration", CancellationToken(timeout=self.timeout))
        except (ProviderError, Cancelled) as e:
            log.info("TMDB API key check failed: %s", e)
            return False
        return True

    @staticmethod
    def _parse_result(result: dict, kind: MediaKind) -> dict[str, Any]:
        """Reduce a raw search result to the fields a record needs."""
        if kind == MediaKind.MOVIE:
            title = result.get("title") or ""
            original = result.get("original_title") or ""
            date = result.get("release_date")
        else:
            title = result.get("name") or ""
            original = result.get("original_name") or ""
            date = result.get("first_air_date")
        return {
            "id": result["id"],
            "title": title,
            "original_title": original,
            "year": _year_from_date(date),
            "overview": result.get("overview") or "",
        }

    def _show_seasons(self, show_id: int, cancel: CancellationToken) -> dict[int, int]:
        """Return season number -> episode count for a show."""
        cached = self.cache.get_seasons(show_id)
        if cached is not None:
            return cached

        data = self._request(f"/tv/{show_id}", cancel, allow_missing=True)
        seasons = {}
        for season in (data or {}).get("seasons") or []:
            number = season.get("season_number")
            if number is not None:
                seasons[int(number)] = int(season.get("episode_count") or 0)

        self.cache.set_seasons(show_id, seasons)
        return seasons

    def search(
        self,
        kind_hint: MediaKind,
        query: str,
        cancel: CancellationToken,
        year: int | None = None,
    ) -> list[CandidateRecord]:
        """
        Search TMDB for movies or shows.

        Args:
            kind_hint: MOVIE searches /search/movie, EPISODE /search/tv
            query: Title to search for
            cancel: Cancellation/timeout token
            year: Optional release year (movies only)

        Returns:
            Candidates in TMDB relevance order
        """
        if kind_hint != MediaKind.MOVIE:
            year = None

        entries = self.cache.get_search(kind_hint.value, query, year)
        if entries is None:
            params: dict[str, Any] = {"query": query, "include_adult": "false"}
            if year:
                params["year"] = year
            endpoint = "/search/movie" if kind_hint == MediaKind.MOVIE else "/search/tv"

            data = self._request(endpoint, cancel, params)
            results = (data or {}).get("results") or []
            log.debug("Found %d results for %r", len(results), query)
            entries = [self._parse_result(r, kind_hint) for r in results if "id" in r]
            self.cache.set_search(kind_hint.value, query, year, entries)

        records = []
        for index, entry in enumerate(entries):
            seasons = {}
            if kind_hint == MediaKind.EPISODE and index < self.season_lookup_limit:
                seasons = self._show_seasons(entry["id"], cancel)
            records.append(CandidateRecord(kind=kind_hint, seasons=seasons, **entry))
        return records

    def fetch_episode(
        self,
        show_id: int,
        season: int,
        episode: int,
        cancel: CancellationToken,
    ) -> EpisodeFacet | None:
        """
        Get episode details from TMDB.

        Args:
            show_id: TMDB series ID
            season: Season number
            episode: Episode number
            cancel: Cancellation/timeout token

        Returns:
            EpisodeFacet if found, None otherwise
        """
        cached = self.cache.get_episode(show_id, season, episode)
        if cached is None:
            endpoint = f"/tv/{show_id}/season/{season}/episode/{episode}"
            data = self._request(endpoint, cancel, allow_missing=True)
            if data is None:
                return None
            cached = {
                "name": data.get("name") or "",
                "air_date": data.get("air_date"),
            }
            self.cache.set_episode(show_id, season, episode, cached)

        return EpisodeFacet(
            show_id=show_id,
            season=season,
            episode=episode,
            title=cached["name"],
            air_date=cached.get("air_date"),
        )
