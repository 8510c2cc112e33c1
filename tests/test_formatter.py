"""
Tests for naming templates
"""
import pytest

from reel.formatter import (
    DEFAULT_EPISODE_TEMPLATE,
    DEFAULT_MOVIE_TEMPLATE,
    PRESETS,
    TemplateError,
    UnresolvedPlaceholder,
    render,
    sanitize_filename,
    template_placeholders,
    validate_template,
)
from reel.models import CandidateRecord, EpisodeFacet, MediaKind, Resolved

from conftest import episode_match, movie_match


def test_movie_default_template():
    """Test the movie name with the extension lower-cased"""
    assert render("{title} ({year})", movie_match(), ".MKV") == "Arrival (2016).mkv"


def test_office_episode():
    record = CandidateRecord(MediaKind.EPISODE, 2316, "The Office US", 2005)
    match = Resolved(record, EpisodeFacet(2316, 2, 1, "The Dundies"), 1.0)

    assert render(DEFAULT_EPISODE_TEMPLATE, match, ".mkv") == "The Office US - S02E01 - The Dundies.mkv"


def test_episode_field_on_movie_is_unresolved():
    """Test that a movie cannot use episode-only fields"""
    with pytest.raises(UnresolvedPlaceholder) as exc:
        render("{title} S{season}", movie_match(), ".mkv")

    assert exc.value.placeholder == "season"
    assert exc.value.kind == MediaKind.MOVIE


def test_unknown_field_is_unresolved():
    with pytest.raises(UnresolvedPlaceholder):
        render("{title} {foo}", movie_match(), ".mkv")


def test_number_widths():
    match = episode_match(season=2, episode=3)

    assert render("{show} {season:1}x{episode:03}", match, ".mkv") == "Show 2x003.mkv"
    assert render("{show} S{season}E{episode}", match, ".mkv") == "Show S02E03.mkv"
    assert render("{show} S{season:02d}", match, ".mkv") == "Show S02.mkv"


def test_missing_year_drops_brackets():
    assert render(DEFAULT_MOVIE_TEMPLATE, movie_match(year=None), ".mp4") == "Arrival.mp4"


def test_missing_episode_title_drops_separator():
    match = episode_match(episode_title="")

    assert render(DEFAULT_EPISODE_TEMPLATE, match, ".mkv") == "Show - S01E01.mkv"


def test_invalid_characters_removed():
    match = movie_match(title="Mission: Impossible", year=1996)

    assert render(DEFAULT_MOVIE_TEMPLATE, match, "mkv") == "Mission Impossible (1996).mkv"


def test_empty_render_fails():
    with pytest.raises(TemplateError):
        render("{original_title}", movie_match(title=""), ".mkv")


def test_no_extension():
    assert render(DEFAULT_MOVIE_TEMPLATE, movie_match(), "") == "Arrival (2016)"


def test_validate_template():
    assert validate_template(DEFAULT_MOVIE_TEMPLATE, MediaKind.MOVIE) == (True, "")
    assert validate_template("", MediaKind.MOVIE)[0] is False
    ok, message = validate_template("{show}", MediaKind.MOVIE)
    assert not ok
    assert "show" in message


def test_presets_are_valid():
    for movie, episode in PRESETS.values():
        assert validate_template(movie, MediaKind.MOVIE)[0]
        assert validate_template(episode, MediaKind.EPISODE)[0]


def test_template_placeholders():
    assert template_placeholders(DEFAULT_EPISODE_TEMPLATE, MediaKind.EPISODE) == [
        "show", "season", "episode", "episode_title",
    ]


def test_sanitize_filename():
    assert sanitize_filename('  a<b>c:d"e/f\\g|h?i*j. ') == "abcdefghij"
