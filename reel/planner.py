"""Rename planner and executor.

Planning turns (path, MatchResult) pairs into an ordered RenamePlan and
finds every collision before anything on disk is touched. Execution
applies the pending entries one by one, in plan order, recording each
failure on its own entry; a failed entry never stops the rest of the
batch and nothing is rolled back automatically.
"""
import logging
import os
import shutil
from collections import Counter
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable

from .cancellation import CancellationToken
from .formatter import (
    DEFAULT_EPISODE_TEMPLATE,
    DEFAULT_MOVIE_TEMPLATE,
    TemplateError,
    render,
)
from .models import (
    MatchResult,
    MediaKind,
    PlanStatus,
    RenamePlanEntry,
    ReportRow,
    Resolved,
    Unresolved,
)
from .parser import split_extension

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamingTemplates:
    movie: str = DEFAULT_MOVIE_TEMPLATE
    episode: str = DEFAULT_EPISODE_TEMPLATE

    def for_kind(self, kind: MediaKind) -> str:
        return self.movie if kind == MediaKind.MOVIE else self.episode


@dataclass(frozen=True)
class RenamePlan:
    """Ordered rename entries; order is insertion order."""
    entries: tuple[RenamePlanEntry, ...] = field(default_factory=tuple)
    overwrite: bool = False

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def with_status(self, status: PlanStatus) -> list[RenamePlanEntry]:
        return [entry for entry in self.entries if entry.status == status]

    @property
    def pending(self) -> list[RenamePlanEntry]:
        return self.with_status(PlanStatus.PENDING)

    def report(self) -> list[ReportRow]:
        """Per-file outcomes, one row per input file, in plan order."""
        return [
            ReportRow(
                source=str(entry.source),
                target=str(entry.target) if entry.target is not None else None,
                status=entry.status.value,
                reason=entry.reason,
            )
            for entry in self.entries
        ]

    def summary(self) -> dict[str, int]:
        """Number of entries per status (every status present)."""
        counts = Counter(entry.status for entry in self.entries)
        return {status.value: counts.get(status, 0) for status in PlanStatus}


def paths_are_equivalent(path1: Path, path2: Path) -> bool:
    """
    Check if two paths point to the same location.

    Args:
        path1: First path
        path2: Second path

    Returns:
        True if paths are equivalent
    """
    try:
        if path1.exists() and path2.exists():
            return os.path.samefile(path1, path2)
        return path1.resolve() == path2.resolve()
    except OSError:
        return str(path1) == str(path2)


def _collision_key(path: Path) -> str:
    # Case-insensitive so the plan is safe on case-insensitive filesystems too
    return os.path.normcase(str(path.resolve())).casefold()


def _target_for(
    source: Path,
    result: MatchResult,
    templates: NamingTemplates,
    destination_root: Path | None,
) -> RenamePlanEntry:
    if isinstance(result, Unresolved):
        return RenamePlanEntry(source, None, PlanStatus.NO_TARGET, result.describe(), result)
    if not isinstance(result, Resolved):
        raise TypeError(f"Unsupported match result: {result!r}")

    _, extension = split_extension(source)
    try:
        filename = render(templates.for_kind(result.kind), result, extension)
    except TemplateError as e:
        log.warning("Cannot name %s: %s", source.name, e)
        return RenamePlanEntry(source, None, PlanStatus.NO_TARGET, str(e), result)

    parent = destination_root if destination_root is not None else source.parent
    target = parent / filename
    if str(target) == str(source):
        return RenamePlanEntry(source, target, PlanStatus.UNCHANGED, "Already named correctly", result)
    return RenamePlanEntry(source, target, PlanStatus.PENDING, None, result)


def plan(
    entries: Iterable[tuple[Path, MatchResult]],
    templates: NamingTemplates | None = None,
    destination_root: Path | None = None,
    overwrite: bool = False,
) -> RenamePlan:
    """
    Build a rename plan for matched files.

    Every input file gets exactly one entry, in input order. Unresolved
    matches and template failures become NO_TARGET entries. Pending
    entries whose target is shared with another entry, or already exists
    on disk as a different file (unless *overwrite*), become
    WOULD_COLLIDE.

    Args:
        entries: (source path, match result) pairs
        templates: Naming templates (defaults when None)
        destination_root: Directory for all targets (source folder if None)
        overwrite: Allow replacing existing files that are not in the plan

    Returns:
        RenamePlan ready for execute()
    """
    templates = templates or NamingTemplates()
    root = Path(destination_root) if destination_root is not None else None

    planned = [
        _target_for(Path(source), result, templates, root)
        for source, result in entries
    ]

    # Intra-plan collisions: every entry sharing a target is blocked,
    # including a file that already carries that name
    counts = Counter(
        _collision_key(entry.target)
        for entry in planned
        if entry.status in (PlanStatus.PENDING, PlanStatus.UNCHANGED)
    )

    checked = []
    for entry in planned:
        if (
            entry.status in (PlanStatus.PENDING, PlanStatus.UNCHANGED)
            and counts[_collision_key(entry.target)] > 1
        ):
            entry = replace(
                entry,
                status=PlanStatus.WOULD_COLLIDE,
                reason="Another file in this batch has the same target",
            )
        elif entry.status == PlanStatus.PENDING:
            if (
                not overwrite
                and entry.target.exists()
                and not paths_are_equivalent(entry.source, entry.target)
            ):
                entry = replace(
                    entry,
                    status=PlanStatus.WOULD_COLLIDE,
                    reason="Destination file already exists",
                )
        checked.append(entry)

    result = RenamePlan(tuple(checked), overwrite=overwrite)
    log.info("Planned %d file(s): %s", len(result), result.summary())
    return result


def _move(source: Path, target: Path, overwrite: bool) -> None:
    """Move one file, refusing to replace a different existing file."""
    if target.exists() and not paths_are_equivalent(source, target) and not overwrite:
        raise FileExistsError(f"Destination file already exists: {target}")
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(source), str(target))


def execute(plan: RenamePlan, cancel: CancellationToken | None = None) -> RenamePlan:
    """
    Apply the pending entries of a plan, sequentially and in order.

    Each entry ends APPLIED or FAILED(reason); other entries are carried
    over untouched. If *cancel* is set, remaining entries stay PENDING.

    Args:
        plan: Plan produced by plan()
        cancel: Optional token to stop between entries

    Returns:
        A new plan with the per-entry outcome
    """
    executed = []
    for entry in plan.entries:
        if entry.status != PlanStatus.PENDING or (cancel is not None and cancel.cancelled):
            executed.append(entry)
            continue

        try:
            _move(entry.source, entry.target, plan.overwrite)
        except OSError as e:
            log.error("Failed to rename %s: %s", entry.source.name, e)
            executed.append(replace(entry, status=PlanStatus.FAILED, reason=str(e)))
            continue

        log.info("Renamed: %s -> %s", entry.source.name, entry.target.name)
        executed.append(replace(entry, status=PlanStatus.APPLIED, reason=None))

    return RenamePlan(tuple(executed), overwrite=plan.overwrite)


def revert_plan(executed: RenamePlan) -> RenamePlan:
    """
    Build a plan that moves every applied entry back to its source.

    Entries are reversed so chains of renames unwind in the opposite
    order. A source path that is occupied again is reported as
    WOULD_COLLIDE.
    """
    entries = []
    for entry in reversed(executed.entries):
        if entry.status != PlanStatus.APPLIED:
            continue
        status = PlanStatus.PENDING
        reason = None
        if entry.source.exists():
            status = PlanStatus.WOULD_COLLIDE
            reason = "Original path is occupied"
        elif not entry.target.exists():
            status = PlanStatus.NO_TARGET
            reason = "Renamed file no longer exists"
        entries.append(RenamePlanEntry(entry.target, entry.source, status, reason, entry.result))
    return RenamePlan(tuple(entries))
