"""Tokenizer: extract identification tokens from media file names."""
import logging
import re
from pathlib import Path

from .cleaner import (
    clean_title,
    extract_tags,
    is_noise_tag,
    normalize_separators,
    split_release_group,
    strip_noise,
)
from .models import MediaKind, ParsedTokens

log = logging.getLogger(__name__)


# Season + episode markers (order matters - more specific first)
EPISODE_PATTERNS = [
    # S01E04 / S1E4 / S01E104 / S01E04E05 (multi-episode keeps the first number)
    re.compile(r'[sS](\d{1,2})\s?[eE](\d{1,3})(?!\d)(?:\s?[eE]\d{1,3}(?!\d))*'),
    # 1x04, 01x05
    re.compile(r'\b(\d{1,2})[xX](\d{1,2})\b'),
    # Season 1 Episode 4
    re.compile(r'\bseason\s*(\d{1,2})\s*episode\s*(\d{1,3})\b', re.IGNORECASE),
]

# Episode-only markers, season 1 implied
EPISODE_ONLY_PATTERNS = [
    re.compile(r'\bepisode\s*(\d{1,3})\b', re.IGNORECASE),
    re.compile(r'\bep\s*(\d{1,3})\b', re.IGNORECASE),
    re.compile(r'\b[eE](\d{1,3})\b'),
]

# Year pattern
YEAR_PATTERN = re.compile(r'\b((?:19|20)\d{2})\b')
MIN_YEAR = 1900
MAX_YEAR = 2099

_EXTENSION = re.compile(r'\.[A-Za-z0-9]{1,5}')


def split_extension(filepath: str | Path) -> tuple[str, str]:
    """
    Split a path into (stem, extension).

    A purely numeric suffix or a release tag is not an extension:
    ``Some.Movie.2010`` keeps its year and ``Some.Movie.1080p`` its tag.
    """
    path = Path(filepath)
    suffix = path.suffix
    if (
        suffix
        and _EXTENSION.fullmatch(suffix)
        and not suffix[1:].isdigit()
        and not is_noise_tag(suffix[1:])
    ):
        return path.stem, suffix
    return path.name, ""


def extract_episode(name: str) -> tuple[int, int, str, str] | None:
    """
    Find the first season/episode marker in a normalized name.

    Returns:
        (season, episode, text_before, text_after) or None
    """
    for pattern in EPISODE_PATTERNS:
        match = pattern.search(name)
        if match:
            return (
                int(match.group(1)),
                int(match.group(2)),
                name[:match.start()],
                name[match.end():],
            )
    return None


def extract_episode_only(name: str) -> tuple[int, str, str] | None:
    """Find an episode-only marker ("Episode 5", "Ep 5", "E05")."""
    for pattern in EPISODE_ONLY_PATTERNS:
        match = pattern.search(name)
        if match:
            return int(match.group(1)), name[:match.start()], name[match.end():]
    return None


def extract_year(name: str) -> tuple[int | None, str]:
    """
    Extract a release year from a normalized name.

    The last plausible year that still leaves a title in front of it
    wins, so ``2001 A Space Odyssey 1968`` keeps the leading number in
    the title.

    Returns:
        (year, text_before_year); year is None when nothing qualifies.
    """
    for match in reversed(list(YEAR_PATTERN.finditer(name))):
        year = int(match.group(1))
        if not MIN_YEAR <= year <= MAX_YEAR:
            continue
        before = clean_title(name[:match.start()])
        if before:
            return year, before
    return None, name


def _has_structure(segment: str) -> bool:
    # Brackets holding a year or an episode marker are kept
    segment = normalize_separators(segment)
    return extract_episode(segment) is not None or YEAR_PATTERN.search(segment) is not None


def tokenize(filepath: str | Path) -> ParsedTokens:
    """
    Parse a media file path into identification tokens.

    Never raises. When nothing structured can be found the cleaned stem
    becomes the title guess; when even that is empty the title is None.

    Args:
        filepath: Path (or bare file name) of the media file

    Returns:
        ParsedTokens with whatever could be extracted
    """
    raw_stem, extension = split_extension(filepath)

    stem, release_group = split_release_group(raw_stem)
    tags = extract_tags(stem)
    name = normalize_separators(strip_noise(stem, keep=_has_structure))

    common = dict(raw_stem=raw_stem, extension=extension, release_group=release_group, **tags)

    found = extract_episode(name)
    if found is None and extract_year(name)[0] is None:
        only = extract_episode_only(name)
        if only is not None:
            episode, before, after = only
            found = (1, episode, before, after)

    if found is not None:
        season, episode, before, after = found
        tokens = ParsedTokens(
            kind=MediaKind.EPISODE,
            title=clean_title(before) or None,
            season=season,
            episode=episode,
            episode_title=clean_title(after) or None,
            **common,
        )
    else:
        year, before = extract_year(name)
        tokens = ParsedTokens(
            kind=MediaKind.MOVIE,
            title=clean_title(before) or None,
            year=year,
            **common,
        )

    log.debug(
        "Parsed %r: kind=%s title=%r year=%s season=%s episode=%s",
        raw_stem, tokens.kind.value, tokens.title, tokens.year,
        tokens.season, tokens.episode,
    )
    return tokens
