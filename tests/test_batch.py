"""
Tests for concurrent batch matching
"""
import threading
import time
from pathlib import Path

import pytest

from reel.batch import match_files
from reel.cancellation import CancellationToken, Cancelled
from reel.matcher import Matcher
from reel.models import CandidateRecord, MediaKind, Resolved, Unresolved, UnresolvedReason
from reel.provider import BoundedProvider

from conftest import FakeProvider


class SlowProvider(FakeProvider):
    """Answers every movie query with a matching record, slowly."""

    def __init__(self, delay=0.05):
        super().__init__()
        self.delay = delay
        self.in_flight = 0
        self.peak = 0
        self._count_lock = threading.Lock()

    def search(self, kind_hint, query, cancel, year=None):
        with self._count_lock:
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
        try:
            time.sleep(self.delay)
            return [CandidateRecord(MediaKind.MOVIE, len(query), query, year)]
        finally:
            with self._count_lock:
                self.in_flight -= 1


class BlockingProvider(FakeProvider):
    """Never answers before its token is cancelled."""

    def search(self, kind_hint, query, cancel, year=None):
        cancel.wait(5)
        raise Cancelled("Operation cancelled")


def movie_paths(count):
    return [f"/inbox/Movie Number {chr(65 + i)}.{2000 + i}.mkv" for i in range(count)]


def test_results_keep_input_order():
    """Test that results line up with the input paths"""
    paths = movie_paths(6)

    matches = match_files(paths, Matcher(SlowProvider()), max_concurrency=3)

    assert [m.path for m in matches] == [Path(p) for p in paths]
    assert all(isinstance(m.result, Resolved) for m in matches)
    assert [m.result.record.year for m in matches] == [2000 + i for i in range(6)]


def test_concurrency_bound_is_respected():
    """Test that no more than max_concurrency lookups run at once"""
    provider = SlowProvider()

    match_files(movie_paths(8), Matcher(provider), max_concurrency=2)

    assert 1 <= provider.peak <= 2


def test_cancelled_before_start():
    provider = SlowProvider()
    token = CancellationToken()
    token.cancel()

    matches = match_files(movie_paths(3), Matcher(provider), cancel=token)

    assert [m.result for m in matches] == [Unresolved(UnresolvedReason.CANCELLED)] * 3
    assert provider.calls == []


def test_deadline_cancels_unfinished_matches():
    token = CancellationToken(timeout=0.2)

    started = time.monotonic()
    matches = match_files(movie_paths(3), Matcher(BlockingProvider()), cancel=token)

    assert time.monotonic() - started < 4
    assert all(m.result.reason == UnresolvedReason.CANCELLED for m in matches)


def test_unexpected_error_stays_with_its_file():
    class Exploding(FakeProvider):
        def search(self, kind_hint, query, cancel, year=None):
            if "B" in query:
                raise RuntimeError("boom")
            return [CandidateRecord(MediaKind.MOVIE, 1, query, year)]

    matches = match_files(movie_paths(3), Matcher(Exploding()), max_concurrency=2)

    assert isinstance(matches[0].result, Resolved)
    assert matches[1].result == Unresolved(UnresolvedReason.PROVIDER_ERROR, "boom")
    assert isinstance(matches[2].result, Resolved)


def test_progress_reports_each_file():
    seen = []

    match_files(movie_paths(4), Matcher(SlowProvider(0)), progress=lambda done, total: seen.append((done, total)))

    assert seen == [(1, 4), (2, 4), (3, 4), (4, 4)]


def test_invalid_concurrency():
    with pytest.raises(ValueError):
        match_files([], Matcher(FakeProvider()), max_concurrency=0)


def test_bounded_provider_limits_direct_callers():
    """Test that the semaphore holds when more threads call than it allows"""
    slow = SlowProvider()
    bounded = BoundedProvider(slow, 2)
    token = CancellationToken()
    answers = []

    def call(query):
        answers.append(bounded.search(MediaKind.MOVIE, query, token))

    threads = [threading.Thread(target=call, args=(f"Query {i}",)) for i in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(answers) == 6
    assert 1 <= slow.peak <= 2


def test_cancel_mid_batch_keeps_finished_matches():
    """Test that matches finished before cancellation stay resolved"""
    class FirstOnly(FakeProvider):
        def search(self, kind_hint, query, cancel, year=None):
            if query.endswith("A"):
                return [CandidateRecord(MediaKind.MOVIE, 1, query, year)]
            cancel.wait(5)
            raise Cancelled("Operation cancelled")

    token = CancellationToken()

    def cancel_after_first(done, total):
        if done == 1:
            token.cancel()

    matches = match_files(
        movie_paths(2), Matcher(FirstOnly()),
        max_concurrency=2, cancel=token, progress=cancel_after_first,
    )

    assert isinstance(matches[0].result, Resolved)
    assert matches[0].result.record.title == "Movie Number A"
    assert matches[1].result == Unresolved(UnresolvedReason.CANCELLED)
