"""
Shared fixtures: a deterministic in-memory metadata provider.
"""
import threading

import pytest

from reel.cancellation import CancellationToken
from reel.models import (
    CandidateRecord,
    EpisodeFacet,
    MediaKind,
    MovieFacet,
    Resolved,
)
from reel.provider import MetadataProvider


class FakeProvider(MetadataProvider):
    """Provider answering from fixed tables and recording every call."""

    def __init__(self, searches=None, episodes=None):
        # (kind, lower-cased query) -> list[CandidateRecord]
        self.searches = searches or {}
        # (show_id, season, episode) -> episode title
        self.episodes = episodes or {}
        self.calls = []
        self._lock = threading.Lock()

    def search(self, kind_hint, query, cancel, year=None):
        cancel.raise_if_cancelled()
        with self._lock:
            self.calls.append(("search", kind_hint, query, year))
        return list(self.searches.get((kind_hint, query.lower()), []))

    def fetch_episode(self, show_id, season, episode, cancel):
        cancel.raise_if_cancelled()
        with self._lock:
            self.calls.append(("episode", show_id, season, episode))
        title = self.episodes.get((show_id, season, episode))
        if title is None:
            return None
        return EpisodeFacet(show_id, season, episode, title)


ARRIVAL = CandidateRecord(MediaKind.MOVIE, 329865, "Arrival", 2016)
THE_OFFICE = CandidateRecord(
    MediaKind.EPISODE, 2316, "The Office US", 2005,
    original_title="The Office", seasons={1: 6, 2: 22},
)


@pytest.fixture
def provider():
    """Provider that knows Arrival and The Office (US)."""
    return FakeProvider(
        searches={
            (MediaKind.MOVIE, "arrival"): [ARRIVAL],
            (MediaKind.EPISODE, "the office us"): [THE_OFFICE],
        },
        episodes={
            (2316, 2, 1): "The Dundies",
            (2316, 1, 1): "Pilot",
        },
    )


@pytest.fixture
def token():
    return CancellationToken()


def movie_match(title="Arrival", year=2016, record_id=329865):
    record = CandidateRecord(MediaKind.MOVIE, record_id, title, year)
    return Resolved(record, MovieFacet(title, year), 0.9)


def episode_match(show="Show", season=1, episode=1, episode_title="Pilot", show_id=1):
    record = CandidateRecord(MediaKind.EPISODE, show_id, show)
    return Resolved(record, EpisodeFacet(show_id, season, episode, episode_title), 0.9)
