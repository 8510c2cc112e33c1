"""Noise denylist for scene-release file names.

Quality, codec, source and release-group tags are stripped from a file
stem before the tokenizer looks for season/episode markers or years, so
that something like ``1080p`` or ``x264`` can never leak into a title.

Patterns run on the raw stem while dots are still intact; every pattern
is word-bounded, so ``H.264`` or ``DD5.1`` are removed as a unit.
Words that also occur in real titles (``Final``, ``Red``, ``Web``,
language names) are absent from the lists, and release tags such as
``INTERNAL`` or ``PROPER`` only count in upper case, so ``Internal Affairs``
keeps its title.
"""
import re
from typing import Callable

# ---------------------------------------------------------------------------
# Pattern groups
# ---------------------------------------------------------------------------

# Resolution / quality
_RESOLUTION = r'(?:480p|576p|720p|1080p|1080i|2160p|4320p|4K|UHD)'

# Video codec
_CODEC = r'(?:x\.?264|x\.?265|h\.?264|h\.?265|HEVC|AVC|XviD|DivX|AV1|VP9)'

# Audio codec / channels
_AUDIO = (
    r'(?:DTS-?HD(?:[. ]MA)?|DTS-?X|DTS|TrueHD|Atmos|E-?AC-?3|AC3'
    r'|DDP?[+]?[257]\.[01]|DDP|AAC(?:[257]\.[01])?|FLAC|LPCM'
    r'|[57]\.1|2\.0)'
)

# Source / rip type
_SOURCE = (
    r'(?:WEB[- .]?DL|WEBRip|Blu-?Ray|BDRip|BRRip|BDRemux|REMUX'
    r'|HDTV|HDRip|DVDRip|DVD|PDTV|SDTV)'
)

# HDR / bit depth
_HDR = r'(?:HDR10\+?|HDR|DoVi|Dolby[. ]?Vision|10-?bit|8-?bit)'

# Streaming services
_STREAMING = r'(?:AMZN|DSNP|HMAX|ATVP|PCOK|HULU)'

# Release / edition tags, case-sensitive
_RELEASE = (
    r'(?-i:REPACK|PROPER|RERIP|EXTENDED|UNRATED|INTERNAL'
    r'|DIRECTORS[. ]CUT|Directors[. ]Cut|MULTI|MULTi|SUBBED|DUBBED)'
)

# Well-known scene groups that show up without a leading dash
_GROUPS = r'(?:YIFY|YTS|RARBG|ETTV|EZTV)'

_WEBSITE = re.compile(r'(?:www\.)\S+?\.(?:com|org|net|to|mx|am)\b', re.IGNORECASE)
_BRACKETS = re.compile(r'\[[^\]]*\]')
_PAREN_NOISE = re.compile(
    r'\([^)]*(?:rip|sub|dub|720|1080|2160|x264|x265|hevc|bluray|web|hdr|remux)[^)]*\)',
    re.IGNORECASE,
)
_TRAILING_GROUP = re.compile(r'-([A-Za-z0-9]+)$')

_NOISE_GROUPS = [_RESOLUTION, _CODEC, _AUDIO, _SOURCE, _HDR, _STREAMING, _RELEASE, _GROUPS]
_NOISE = re.compile(
    r'(?<![A-Za-z0-9])(?:' + '|'.join(_NOISE_GROUPS) + r')(?![A-Za-z0-9])',
    re.IGNORECASE,
)
# A noise tag right before a trailing "-GROUP"
_NOISE_TAIL = re.compile(
    r'(?<![A-Za-z0-9])(?:' + '|'.join(_NOISE_GROUPS) + r')$',
    re.IGNORECASE,
)

# Canonical names reported for the first tag found in each category
_QUALITY_TAGS = [
    (r'2160p', "2160p"), (r'4K', "4K"), (r'UHD', "UHD"),
    (r'1080[pi]', "1080p"), (r'720p', "720p"), (r'576p', "576p"), (r'480p', "480p"),
]
_SOURCE_TAGS = [
    (r'Blu-?Ray', "BluRay"), (r'BDRip', "BDRip"), (r'BRRip', "BRRip"),
    (r'WEB[- .]?DL', "WEB-DL"), (r'WEBRip', "WEBRip"), (r'HDTV', "HDTV"),
    (r'DVDRip', "DVDRip"), (r'HDRip', "HDRip"),
]
_CODEC_TAGS = [
    (r'x\.?265', "x265"), (r'HEVC', "HEVC"), (r'h\.?265', "H.265"),
    (r'x\.?264', "x264"), (r'h\.?264', "H.264"), (r'AVC', "AVC"),
    (r'XviD', "XviD"), (r'AV1', "AV1"),
]
_AUDIO_TAGS = [
    (r'DTS-?HD', "DTS-HD"), (r'Atmos', "Atmos"), (r'TrueHD', "TrueHD"),
    (r'DTS', "DTS"), (r'E-?AC-?3|DDP', "EAC3"), (r'AC3', "AC3"),
    (r'AAC', "AAC"), (r'FLAC', "FLAC"),
]


def _find_tag(name: str, table: list[tuple[str, str]]) -> str | None:
    for pattern, label in table:
        if re.search(rf'(?<![A-Za-z0-9]){pattern}(?![A-Za-z])', name, re.IGNORECASE):
            return label
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_tags(name: str) -> dict[str, str | None]:
    """Report quality, source, codec and audio tags present in *name*."""
    return {
        "quality": _find_tag(name, _QUALITY_TAGS),
        "source": _find_tag(name, _SOURCE_TAGS),
        "codec": _find_tag(name, _CODEC_TAGS),
        "audio": _find_tag(name, _AUDIO_TAGS),
    }


def split_release_group(stem: str) -> tuple[str, str | None]:
    """Split a trailing ``-GROUP`` release tag off *stem*.

    The tag is only taken when it directly follows a known noise tag
    (``x264-SPARKS``), so hyphenated titles such as ``Spider-Man`` are
    left alone.
    """
    match = _TRAILING_GROUP.search(stem)
    if not match:
        return stem, None
    head = stem[:match.start()]
    if not _NOISE_TAIL.search(head):
        return stem, None
    return head, match.group(1)


def is_noise_tag(word: str) -> bool:
    """True if *word* as a whole is a denylisted tag (``1080p``, ``x264``)."""
    return _NOISE.fullmatch(word) is not None


def strip_noise(name: str, keep: Callable[[str], bool] | None = None) -> str:
    """
    Remove bracketed segments, watermarks and denylisted tags.

    Args:
        name: Raw stem
        keep: Called with the contents of each bracketed or noisy
              parenthesised segment; when it returns True only the
              brackets are dropped and the contents stay in the name.

    Returns:
        The stem with noise replaced by spaces
    """
    def unwrap(match: re.Match) -> str:
        inner = match.group(0)[1:-1]
        if keep is not None and keep(inner):
            return f' {inner} '
        return ' '

    name = _BRACKETS.sub(unwrap, name)
    name = _WEBSITE.sub(' ', name)
    name = _PAREN_NOISE.sub(unwrap, name)
    name = _NOISE.sub(' ', name)
    return name


def normalize_separators(name: str) -> str:
    """Replace dots, underscores and hyphens with single spaces."""
    name = re.sub(r'[._\-]+', ' ', name)
    return re.sub(r'\s+', ' ', name).strip()


def clean_title(title: str) -> str:
    """Tidy a title candidate after separators were normalized."""
    # Remove empty parentheses or brackets
    title = re.sub(r'\(\s*\)|\[\s*\]', ' ', title)
    # Stray punctuation at either end
    title = re.sub(r'^[\s\-,]+|[\s\-(\[,]+$', '', title)
    title = re.sub(r'\s+', ' ', title)
    return title.strip()
