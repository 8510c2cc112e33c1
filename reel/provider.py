"""Metadata provider interface consumed by the matcher.

The engine only talks to providers through :class:`MetadataProvider`,
so it can run against the TMDB client in production and a
deterministic in-memory fake in tests.
"""
import threading
from abc import ABC, abstractmethod

from .cancellation import CancellationToken
from .models import CandidateRecord, EpisodeFacet, MediaKind


# How often a waiting call re-checks its cancellation token
_POLL_INTERVAL = 0.1


class ProviderError(Exception):
    """Transport, auth or response failure from a metadata provider."""
    pass


class MetadataProvider(ABC):
    """Search and episode lookup capability.

    Implementations raise :class:`ProviderError` on failure and
    :class:`~reel.cancellation.Cancelled` when the token is set. They
    may retry internally; the engine never does.
    """

    @abstractmethod
    def search(
        self,
        kind_hint: MediaKind,
        query: str,
        cancel: CancellationToken,
        year: int | None = None,
    ) -> list[CandidateRecord]:
        """Return candidates in the provider's relevance order."""

    @abstractmethod
    def fetch_episode(
        self,
        show_id: int,
        season: int,
        episode: int,
        cancel: CancellationToken,
    ) -> EpisodeFacet | None:
        """Return the episode facet, or None when it does not exist."""


class BoundedProvider(MetadataProvider):
    """Wrap a provider so at most *limit* calls are in flight at once."""

    def __init__(self, provider: MetadataProvider, limit: int):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.provider = provider
        self.limit = limit
        self._semaphore = threading.Semaphore(limit)

    def _acquire(self, cancel: CancellationToken) -> None:
        while not self._semaphore.acquire(timeout=_POLL_INTERVAL):
            cancel.raise_if_cancelled()
        if cancel.cancelled:
            self._semaphore.release()
            cancel.raise_if_cancelled()

    def search(self, kind_hint, query, cancel, year=None):
        self._acquire(cancel)
        try:
            return self.provider.search(kind_hint, query, cancel, year=year)
        finally:
            self._semaphore.release()

    def fetch_episode(self, show_id, season, episode, cancel):
        self._acquire(cancel)
        try:
            return self.provider.fetch_episode(show_id, season, episode, cancel)
        finally:
            self._semaphore.release()
