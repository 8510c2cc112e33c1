"""
Tests for the local lookup cache
"""
import json

from reel.cache import CACHE_FILE, Cache


def test_search_round_trip(tmp_path):
    cache = Cache(tmp_path)
    cache.set_search("movie", "Arrival", 2016, [{"id": 1, "title": "Arrival"}])

    assert Cache(tmp_path).get_search("movie", "  arrival ", 2016) == [{"id": 1, "title": "Arrival"}]
    assert cache.get_search("movie", "Arrival") is None
    assert cache.get_search("episode", "Arrival", 2016) is None


def test_seasons_survive_json(tmp_path):
    Cache(tmp_path).set_seasons(2316, {1: 6, 2: 22})

    assert Cache(tmp_path).get_seasons(2316) == {1: 6, 2: 22}
    assert Cache(tmp_path).get_seasons(1) is None


def test_episode(tmp_path):
    cache = Cache(tmp_path)
    cache.set_episode(2316, 2, 1, {"name": "The Dundies"})

    assert cache.get_episode(2316, 2, 1) == {"name": "The Dundies"}
    assert cache.get_episode(2316, 2, 2) is None


def test_corrupt_file_is_ignored(tmp_path):
    (tmp_path / CACHE_FILE).write_text("{not json")

    cache = Cache(tmp_path)

    assert cache.get_search("movie", "Arrival") is None


def test_clear(tmp_path):
    cache = Cache(tmp_path)
    cache.set_episode(1, 1, 1, {"name": "Pilot"})
    cache.clear()

    data = json.loads((tmp_path / CACHE_FILE).read_text())
    assert data == {"searches": {}, "seasons": {}, "episodes": {}}
