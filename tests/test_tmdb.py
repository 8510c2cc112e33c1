"""
Tests for the TMDB client (HTTP mocked)
"""
from unittest.mock import MagicMock

import pytest
import requests

from reel import tmdb
from reel.cache import Cache
from reel.cancellation import CancellationToken, Cancelled
from reel.models import EpisodeFacet, MediaKind
from reel.provider import ProviderError
from reel.tmdb import TMDBClient, TMDBError, load_api_key


def response(status=200, payload=None):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload if payload is not None else {}
    if status >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} Error")
    return resp


@pytest.fixture(autouse=True)
def no_rate_limit(monkeypatch):
    monkeypatch.setattr(tmdb, "RATE_LIMIT_DELAY", 0)


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session, tmp_path):
    return TMDBClient(api_key="secret", cache=Cache(tmp_path), session=session)


def test_missing_key_raises(monkeypatch, tmp_path):
    monkeypatch.setattr(tmdb, "load_api_key", lambda: None)

    with pytest.raises(TMDBError):
        TMDBClient(cache=Cache(tmp_path))


def test_api_key_from_environment(monkeypatch):
    monkeypatch.setenv("TMDB_API_KEY", "from-env")

    assert load_api_key() == "from-env"


def test_search_movie(client, session):
    session.get.return_value = response(payload={"results": [
        {"id": 329865, "title": "Arrival", "original_title": "Arrival", "release_date": "2016-11-10"},
        {"id": 1, "title": "The Arrival", "release_date": ""},
    ]})

    records = client.search(MediaKind.MOVIE, "Arrival", CancellationToken(), year=2016)

    assert [r.id for r in records] == [329865, 1]
    assert records[0].year == 2016
    assert records[1].year is None
    url = session.get.call_args.args[0]
    params = session.get.call_args.kwargs["params"]
    assert url.endswith("/search/movie")
    assert params["query"] == "Arrival"
    assert params["year"] == 2016
    assert params["api_key"] == "secret"


def test_search_uses_cache(client, session):
    session.get.return_value = response(payload={"results": [{"id": 1, "title": "Arrival"}]})

    client.search(MediaKind.MOVIE, "Arrival", CancellationToken())
    client.search(MediaKind.MOVIE, "arrival", CancellationToken())

    assert session.get.call_count == 1


def test_search_tv_loads_seasons(client, session):
    session.get.side_effect = [
        response(payload={"results": [{"id": 2316, "name": "The Office", "first_air_date": "2005-03-24"}]}),
        response(payload={"seasons": [
            {"season_number": 0, "episode_count": 3},
            {"season_number": 1, "episode_count": 6},
        ]}),
    ]

    [record] = client.search(MediaKind.EPISODE, "The Office", CancellationToken(), year=2005)

    assert record.kind == MediaKind.EPISODE
    assert record.title == "The Office"
    assert record.seasons == {0: 3, 1: 6}
    assert record.has_episode(1, 6)
    # Shows are searched without a year
    assert "year" not in session.get.call_args_list[0].kwargs["params"]


def test_fetch_episode(client, session):
    session.get.return_value = response(payload={"name": "The Dundies", "air_date": "2005-09-20"})

    facet = client.fetch_episode(2316, 2, 1, CancellationToken())

    assert facet == EpisodeFacet(2316, 2, 1, "The Dundies", "2005-09-20")
    assert session.get.call_args.args[0].endswith("/tv/2316/season/2/episode/1")


def test_fetch_missing_episode(client, session):
    session.get.return_value = response(status=404)

    assert client.fetch_episode(2316, 2, 99, CancellationToken()) is None


def test_unauthorized(client, session):
    session.get.return_value = response(status=401)

    with pytest.raises(ProviderError):
        client.search(MediaKind.MOVIE, "Arrival", CancellationToken())


def test_server_error(client, session):
    session.get.return_value = response(status=500)

    with pytest.raises(ProviderError):
        client.search(MediaKind.MOVIE, "Arrival", CancellationToken())


def test_connection_error(client, session):
    session.get.side_effect = requests.exceptions.ConnectionError("unreachable")

    with pytest.raises(ProviderError):
        client.search(MediaKind.MOVIE, "Arrival", CancellationToken())


def test_cancelled_before_request(client, session):
    token = CancellationToken()
    token.cancel()

    with pytest.raises(Cancelled):
        client.search(MediaKind.MOVIE, "Arrival", token)
    session.get.assert_not_called()


def test_timeout_bounded_by_deadline(client, session):
    session.get.return_value = response(payload={"results": []})

    client.search(MediaKind.MOVIE, "Arrival", CancellationToken(timeout=2))

    assert session.get.call_args.kwargs["timeout"] <= 2


def test_verify_api_key(client, session):
    session.get.return_value = response(status=401)

    assert client.verify_api_key() is False
