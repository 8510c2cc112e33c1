"""Batch matching with a bounded number of concurrent provider calls.

Tokenizing is pure and happens up front. Matching fans out over a thread
pool; every provider call goes through a semaphore so at most
``max_concurrency`` calls are in flight. A single cancellation token
reaches every match: once set, matches that have not finished end as
``Unresolved(CANCELLED)`` and finished ones are kept.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from .cancellation import CancellationToken
from .matcher import Matcher
from .models import MatchResult, ParsedTokens, Unresolved, UnresolvedReason
from .parser import tokenize
from .provider import BoundedProvider

log = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 4


@dataclass(frozen=True)
class FileMatch:
    """Tokens and match outcome for one input file."""
    path: Path
    tokens: ParsedTokens
    result: MatchResult


def match_files(
    paths: Iterable[str | Path],
    matcher: Matcher,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    cancel: CancellationToken | None = None,
    progress: Callable[[int, int], None] | None = None,
) -> list[FileMatch]:
    """
    Tokenize and match a batch of files.

    Args:
        paths: Media files to identify
        matcher: Matcher whose provider is used for lookups
        max_concurrency: Maximum number of provider calls in flight
        cancel: Token shared by every match of the batch
        progress: Called with (done, total) as matches finish

    Returns:
        One FileMatch per input path, in input order
    """
    if max_concurrency < 1:
        raise ValueError("max_concurrency must be at least 1")

    cancel = cancel or CancellationToken()
    paths = [Path(p) for p in paths]
    tokens = [tokenize(p) for p in paths]
    bounded = Matcher(BoundedProvider(matcher.provider, max_concurrency), matcher.threshold)

    def work(item: ParsedTokens) -> MatchResult:
        if cancel.cancelled:
            return Unresolved(UnresolvedReason.CANCELLED)
        return bounded.identify(item, cancel)

    results: list[MatchResult | None] = [None] * len(tokens)
    total = len(tokens)
    log.info("Matching %d file(s), at most %d provider call(s) at once", total, max_concurrency)

    with ThreadPoolExecutor(max_workers=max_concurrency) as ex:
        futs = {ex.submit(work, item): index for index, item in enumerate(tokens)}
        for done, fut in enumerate(as_completed(futs), 1):
            index = futs[fut]
            try:
                results[index] = fut.result()
            except Exception as e:
                # A broken provider must not take the rest of the batch down
                log.exception("Unexpected error matching %s", paths[index].name)
                results[index] = Unresolved(UnresolvedReason.PROVIDER_ERROR, str(e))
            if progress is not None:
                progress(done, total)

    return [
        FileMatch(path, item, result)
        for path, item, result in zip(paths, tokens, results)
    ]
