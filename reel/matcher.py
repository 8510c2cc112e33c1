"""Score provider candidates against parsed tokens and pick a match.

Scoring is deliberately simple and deterministic:

    score = 0.7 * title_similarity + 0.3 * bonus

where *title_similarity* averages word overlap and a
``difflib.SequenceMatcher`` ratio on normalized titles, and *bonus* is 1
when the year matches exactly (movies) or the parsed season/episode
exists in the candidate's season layout (shows). Candidates are ranked by
score with the provider's own order breaking ties, and nothing at or
below ``ACCEPTANCE_THRESHOLD`` is accepted: no match is preferred over a
wrong one.
"""
import logging
import re
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Sequence

from .cancellation import CancellationToken, Cancelled
from .models import (
    CandidateRecord,
    MatchResult,
    MediaKind,
    MovieFacet,
    ParsedTokens,
    Resolved,
    Unresolved,
    UnresolvedReason,
)
from .provider import MetadataProvider, ProviderError

log = logging.getLogger(__name__)

ACCEPTANCE_THRESHOLD = 0.55
TITLE_WEIGHT = 0.7
BONUS_WEIGHT = 0.3


def normalize_for_comparison(text: str) -> str:
    """Normalize a string for comparison."""
    text = text.lower()
    # Remove special characters
    text = re.sub(r'[^\w\s]', '', text)
    text = text.replace('_', ' ')
    # Normalize whitespace
    return re.sub(r'\s+', ' ', text).strip()


def title_similarity(s1: str, s2: str) -> float:
    """Similarity of two titles in [0, 1]."""
    s1_norm = normalize_for_comparison(s1)
    s2_norm = normalize_for_comparison(s2)
    if not s1_norm or not s2_norm:
        return 0.0
    words1, words2 = set(s1_norm.split()), set(s2_norm.split())
    overlap = len(words1 & words2) / len(words1 | words2)
    ratio = SequenceMatcher(None, s1_norm, s2_norm).ratio()
    return (overlap + ratio) / 2


@dataclass(frozen=True)
class ScoredCandidate:
    record: CandidateRecord
    score: float
    index: int  # position in the provider's list


def score_candidate(tokens: ParsedTokens, record: CandidateRecord) -> float:
    """Score one candidate against the tokens."""
    if not tokens.title:
        return 0.0
    similarity = title_similarity(tokens.title, record.title)
    if record.original_title:
        similarity = max(similarity, title_similarity(tokens.title, record.original_title))

    if tokens.kind == MediaKind.EPISODE:
        bonus = record.has_episode(tokens.season, tokens.episode)
    else:
        bonus = tokens.year is not None and tokens.year == record.year

    return TITLE_WEIGHT * similarity + BONUS_WEIGHT * float(bonus)


def rank_candidates(
    tokens: ParsedTokens,
    candidates: Sequence[CandidateRecord],
) -> list[ScoredCandidate]:
    """Rank candidates by score, best first; ties keep provider order."""
    scored = [
        ScoredCandidate(record, score_candidate(tokens, record), index)
        for index, record in enumerate(candidates)
    ]
    scored.sort(key=lambda s: (-s.score, s.index))
    return scored


class Matcher:
    """Resolve parsed tokens to a concrete movie or episode.

    The matcher is stateless apart from its provider, so one instance can
    serve every worker thread of a batch.
    """

    def __init__(self, provider: MetadataProvider, threshold: float = ACCEPTANCE_THRESHOLD):
        self.provider = provider
        self.threshold = threshold

    def match(
        self,
        tokens: ParsedTokens,
        candidates: Sequence[CandidateRecord],
        cancel: CancellationToken | None = None,
    ) -> MatchResult:
        """
        Pick the best candidate for *tokens*.

        Shows need a second lookup for the concrete episode; if that
        fails the whole match is Unresolved.

        Args:
            tokens: Parsed tokens of one file
            candidates: Provider search results, in provider order
            cancel: Cancellation/timeout token for the episode lookup

        Returns:
            Resolved or Unresolved
        """
        if not tokens.title:
            return Unresolved(UnresolvedReason.NO_TITLE_EXTRACTED)

        ranked = rank_candidates(tokens, candidates)
        if not ranked:
            return Unresolved(UnresolvedReason.LOW_CONFIDENCE, "no candidates")

        best = ranked[0]
        log.debug(
            "Best candidate for %r: %r (id=%s) score=%.3f",
            tokens.title, best.record.title, best.record.id, best.score,
        )
        if best.score <= self.threshold:
            return Unresolved(
                UnresolvedReason.LOW_CONFIDENCE,
                f"best score {best.score:.2f} for {best.record.title!r}",
            )
        return self._resolve(tokens, best.record, best.score, cancel or CancellationToken())

    def identify(
        self,
        tokens: ParsedTokens,
        cancel: CancellationToken | None = None,
    ) -> MatchResult:
        """Search the provider for *tokens* and match the results."""
        if not tokens.title:
            log.info("No title extracted from %r", tokens.raw_stem)
            return Unresolved(UnresolvedReason.NO_TITLE_EXTRACTED)

        cancel = cancel or CancellationToken()
        try:
            candidates = self.provider.search(tokens.kind, tokens.title, cancel, year=tokens.year)
        except Cancelled:
            return Unresolved(UnresolvedReason.CANCELLED)
        except ProviderError as e:
            log.warning("Provider error for %r: %s", tokens.title, e)
            return Unresolved(UnresolvedReason.PROVIDER_ERROR, str(e))

        return self.match(tokens, candidates, cancel)

    def search(
        self,
        query: str,
        kind: MediaKind,
        tokens: ParsedTokens | None = None,
        cancel: CancellationToken | None = None,
    ) -> list[ScoredCandidate]:
        """
        Manual search: rank provider results for a user-supplied query.

        Candidates are scored against the query (with the file's year or
        season/episode when *tokens* are given). Provider failures
        propagate so the caller can show them.
        """
        cancel = cancel or CancellationToken()
        year = tokens.year if tokens is not None else None
        candidates = self.provider.search(kind, query, cancel, year=year)

        base = tokens or ParsedTokens(raw_stem=query, kind=kind)
        query_tokens = ParsedTokens(
            raw_stem=base.raw_stem,
            kind=kind,
            title=query,
            year=base.year,
            season=base.season,
            episode=base.episode,
        )
        return rank_candidates(query_tokens, candidates)

    def resolve(
        self,
        tokens: ParsedTokens,
        record: CandidateRecord,
        cancel: CancellationToken | None = None,
    ) -> MatchResult:
        """Accept a user-chosen candidate (confidence 1.0)."""
        return self._resolve(tokens, record, 1.0, cancel or CancellationToken())

    def _resolve(
        self,
        tokens: ParsedTokens,
        record: CandidateRecord,
        score: float,
        cancel: CancellationToken,
    ) -> MatchResult:
        confidence = min(1.0, max(0.0, score))

        if record.kind == MediaKind.MOVIE:
            facet = MovieFacet(
                title=record.title,
                year=record.year,
                original_title=record.original_title,
            )
            return Resolved(record, facet, confidence)

        if tokens.season is None or tokens.episode is None:
            return Unresolved(
                UnresolvedReason.EPISODE_NOT_FOUND,
                "no season/episode in file name",
            )

        try:
            episode = self.provider.fetch_episode(record.id, tokens.season, tokens.episode, cancel)
        except Cancelled:
            return Unresolved(UnresolvedReason.CANCELLED)
        except ProviderError as e:
            log.warning("Provider error fetching episode of %r: %s", record.title, e)
            return Unresolved(UnresolvedReason.PROVIDER_ERROR, str(e))

        if episode is None:
            return Unresolved(
                UnresolvedReason.EPISODE_NOT_FOUND,
                f"{record.title} S{tokens.season:02d}E{tokens.episode:02d}",
            )
        return Resolved(record, episode, confidence)
