"""Template renderer: build target file names from resolved matches."""
import re
from typing import Any

from .models import EpisodeFacet, MediaKind, MovieFacet, Resolved


# Default templates
DEFAULT_MOVIE_TEMPLATE = "{title} ({year})"
DEFAULT_EPISODE_TEMPLATE = "{show} - S{season:02}E{episode:02} - {episode_title}"

# (movie template, episode template)
PRESETS = {
    "Default": (DEFAULT_MOVIE_TEMPLATE, DEFAULT_EPISODE_TEMPLATE),
    "Plex": ("{title} ({year})", "{show} - s{season:02}e{episode:02} - {episode_title}"),
    "Jellyfin": ("{title} ({year})", "{show} S{season:02}E{episode:02} {episode_title}"),
}

# Placeholders valid for each kind
FIELDS = {
    MediaKind.MOVIE: {"title", "year", "original_title"},
    MediaKind.EPISODE: {
        "title", "show", "year", "season", "episode",
        "episode_title", "original_title", "air_date",
    },
}

DEFAULT_WIDTH = 2

_PLACEHOLDER = re.compile(r'\{([^{}]*)\}')
# name, optional ":NN" or ":NNd" width
_FIELD = re.compile(r'(\w+)(?::(\d+)d?)?')


class TemplateError(ValueError):
    """A naming template cannot produce a file name."""
    pass


class UnresolvedPlaceholder(TemplateError):
    """Template references a field the match's kind does not have."""

    def __init__(self, placeholder: str, kind: MediaKind):
        self.placeholder = placeholder
        self.kind = kind
        super().__init__(f"Unresolved placeholder {{{placeholder}}} for {kind.value} template")


def sanitize_filename(name: str) -> str:
    """
    Remove or replace characters that are invalid in file names.

    Args:
        name: The name to sanitize

    Returns:
        Sanitized name safe for use as a filename
    """
    # Characters not allowed in Windows filenames: / \ : * ? " < > |
    invalid_chars = r'[<>:"/\\|?*\x00-\x1f]'
    sanitized = re.sub(invalid_chars, '', name)
    # Replace multiple spaces with single space
    sanitized = re.sub(r'\s+', ' ', sanitized)
    # Remove leading/trailing dots and spaces
    return sanitized.strip('. ')


def _tidy(name: str) -> str:
    """Drop what empty placeholders leave behind."""
    # Empty parentheses or brackets, e.g. "Title ()" without a year
    name = re.sub(r'\(\s*\)|\[\s*\]', '', name)
    # Runs of separators, e.g. "Show - S01E02 -  - x"
    name = re.sub(r'(?:\s+-)+\s+-\s+', ' - ', name)
    # Separators dangling at either end
    name = re.sub(r'^[\s\-]+|[\s\-]+$', '', name)
    return re.sub(r'\s+', ' ', name)


def field_values(match: Resolved) -> dict[str, Any]:
    """Values available to templates for a resolved match."""
    record = match.record
    facet = match.facet
    if isinstance(facet, MovieFacet):
        title = facet.title or record.title
        return {
            "title": title,
            "year": facet.year if facet.year is not None else record.year,
            "original_title": facet.original_title or record.original_title or title,
        }
    if isinstance(facet, EpisodeFacet):
        return {
            "title": record.title,
            "show": record.title,
            "year": record.year,
            "season": facet.season,
            "episode": facet.episode,
            "episode_title": facet.title,
            "original_title": record.original_title or record.title,
            "air_date": facet.air_date,
        }
    raise TypeError(f"Unsupported facet: {facet!r}")


def _parse_placeholder(body: str, kind: MediaKind) -> tuple[str, int | None]:
    field = _FIELD.fullmatch(body)
    if not field or field.group(1) not in FIELDS[kind]:
        raise UnresolvedPlaceholder(body, kind)
    width = field.group(2)
    return field.group(1), int(width) if width is not None else None


def template_placeholders(template: str, kind: MediaKind) -> list[str]:
    """
    List the field names a template uses.

    Raises:
        UnresolvedPlaceholder: For unknown fields or fields of the other kind.
    """
    return [_parse_placeholder(body, kind)[0] for body in _PLACEHOLDER.findall(template)]


def validate_template(template: str, kind: MediaKind) -> tuple[bool, str]:
    """Check a template without rendering it. Returns (ok, message)."""
    if not template or not template.strip():
        return False, "Template cannot be empty"
    try:
        template_placeholders(template, kind)
    except UnresolvedPlaceholder as e:
        return False, str(e)
    return True, ""


def render(template: str, match: Resolved, source_extension: str) -> str:
    """
    Render a target file name for a resolved match.

    Numeric fields are zero-padded to the ``:NN`` width, or to two
    digits when no width is given. Empty optional values (an unknown
    year, a missing episode title) are dropped together with the
    brackets or separators around them. The source extension is always
    appended, lower-cased.

    Args:
        template: Naming template, e.g. "{title} ({year})"
        match: Resolved match to take values from
        source_extension: Extension of the source file ("" for none)

    Returns:
        Target file name

    Raises:
        UnresolvedPlaceholder: If the template uses a field the match's
            kind does not provide.
        TemplateError: If the template renders to an empty name.
    """
    kind = match.kind
    values = field_values(match)

    def substitute(placeholder: re.Match) -> str:
        name, width = _parse_placeholder(placeholder.group(1), kind)
        value = values.get(name)
        if value is None or value == "":
            return ""
        if isinstance(value, int):
            return f"{value:0{width if width is not None else DEFAULT_WIDTH}d}"
        return sanitize_filename(str(value))

    filename = sanitize_filename(_tidy(_PLACEHOLDER.sub(substitute, template)))
    if not filename:
        raise TemplateError(f"Template {template!r} rendered an empty name")

    extension = source_extension.lower()
    if extension and not extension.startswith('.'):
        extension = f".{extension}"
    return f"{filename}{extension}"
