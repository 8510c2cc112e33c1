"""Data models for the reel package."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union


class MediaKind(Enum):
    MOVIE = "movie"
    EPISODE = "episode"


@dataclass(frozen=True)
class ParsedTokens:
    """Identification tokens extracted from a file name.

    Every field except ``raw_stem`` and ``kind`` is optional; a missing
    value means the tokenizer could not tell, not that parsing failed.
    """
    raw_stem: str
    kind: MediaKind = MediaKind.MOVIE
    title: str | None = None
    year: int | None = None
    season: int | None = None
    episode: int | None = None
    episode_title: str | None = None
    extension: str = ""
    # Informational tags seen in the name (never used for naming)
    quality: str | None = None
    source: str | None = None
    codec: str | None = None
    audio: str | None = None
    release_group: str | None = None

    @property
    def is_ambiguous(self) -> bool:
        """True when no usable title was extracted."""
        return not self.title


@dataclass(frozen=True)
class CandidateRecord:
    """A metadata entry returned by a provider search."""
    kind: MediaKind
    id: int
    title: str
    year: int | None = None
    original_title: str = ""
    overview: str = ""
    # season number -> episode count, shows only (empty when unknown)
    seasons: dict[int, int] = field(default_factory=dict, hash=False, compare=False)

    def has_episode(self, season: int | None, episode: int | None) -> bool:
        """Check whether the record lists the given season/episode."""
        if season is None or episode is None:
            return False
        count = self.seasons.get(season)
        return count is not None and 1 <= episode <= count


@dataclass(frozen=True)
class MovieFacet:
    title: str
    year: int | None = None
    original_title: str = ""


@dataclass(frozen=True)
class EpisodeFacet:
    show_id: int
    season: int
    episode: int
    title: str = ""
    air_date: str | None = None


class UnresolvedReason(Enum):
    NO_TITLE_EXTRACTED = "no_title_extracted"
    LOW_CONFIDENCE = "low_confidence"
    EPISODE_NOT_FOUND = "episode_not_found"
    PROVIDER_ERROR = "provider_error"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Resolved:
    """A successful match: the record, its concrete facet and the score."""
    record: CandidateRecord
    facet: MovieFacet | EpisodeFacet
    confidence: float

    @property
    def kind(self) -> MediaKind:
        return self.record.kind


@dataclass(frozen=True)
class Unresolved:
    reason: UnresolvedReason
    detail: str = ""

    def describe(self) -> str:
        if self.detail:
            return f"{self.reason.value}: {self.detail}"
        return self.reason.value


MatchResult = Union[Resolved, Unresolved]


class PlanStatus(Enum):
    PENDING = "pending"
    WOULD_COLLIDE = "would_collide"
    NO_TARGET = "no_target"
    UNCHANGED = "unchanged"
    APPLIED = "applied"
    FAILED = "failed"


@dataclass(frozen=True)
class RenamePlanEntry:
    """One file in a rename plan."""
    source: Path
    target: Path | None
    status: PlanStatus
    reason: str | None = None
    result: MatchResult | None = None


@dataclass(frozen=True)
class ReportRow:
    """Per-file outcome handed to presentation code."""
    source: str
    target: str | None
    status: str
    reason: str | None = None
