# snapnorm/core/naming/canonicalizer.py
"""
Filename canonicalization over a tree of snapshots.

Per file:
  1) extract the source URL (none → only fold full-width punctuation in the name)
  2) flatten it, carry over / synthesize the datetime suffix
  3) keep the original (compound) extension, compose + sanitize
  4) resolve collisions and rename (apply) or report (dry-run)

Planning (`plan_canonical_name`) is pure; only `canonicalize_file` touches disk.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterator
from datetime import datetime
from pathlib import Path

from snapnorm.schemas.models import CanonicalizeFlags, RenameOutcome, RenamePlan

from ..errors import SnapshotError, snapshot_error_guard
from ..storage import read_snapshot
from .collision import _occupied, resolve_collision
from .filename import (
    compose_canonical_name,
    datetime_suffix_for,
    has_snapshot_ext,
    sanitize_filename,
    snapshot_ext,
)
from .flatten import flatten_url
from .url_extract import extract_source_url, normalize_fullwidth

logger = logging.getLogger(__name__)

ExistsFn = Callable[[str], bool]


# -----------------------
# Planning (pure)
# -----------------------


def plan_canonical_name(
    current_name: str,
    html: str,
    *,
    prefer_canonical: bool = True,
    now: datetime | None = None,
) -> RenamePlan:
    """Compute the name a snapshot should carry. No filesystem access."""
    url = extract_source_url(html, prefer_canonical=prefer_canonical)

    if url is None:
        folded = normalize_fullwidth(current_name)
        if folded == current_name:
            return RenamePlan(current_name=current_name, desired_name=None, reason="no-url")
        return RenamePlan(
            current_name=current_name,
            desired_name=sanitize_filename(folded),
            reason="punctuation",
        )

    desired = compose_canonical_name(
        flatten_url(url),
        datetime_suffix_for(current_name, now=now),
        snapshot_ext(current_name),
    )
    return RenamePlan(current_name=current_name, desired_name=desired, source_url=url, reason="url")


# -----------------------
# Effecting
# -----------------------


def canonicalize_file(
    path: Path,
    flags: CanonicalizeFlags,
    *,
    now: datetime | None = None,
    exists: ExistsFn | None = None,
) -> RenameOutcome:
    """
    Plan and (in apply mode) perform the rename of one snapshot.

    Raises typed per-file errors (SnapshotReadError / SnapshotWriteError);
    batch callers catch them.
    """
    with snapshot_error_guard(path):
        html = read_snapshot(path, strict=False)
        plan = plan_canonical_name(path.name, html, prefer_canonical=flags.prefer_canonical, now=now)

    if plan.is_noop:
        return RenameOutcome(path=path, status="noop", old_name=path.name, source_url=plan.source_url)

    assert plan.desired_name is not None
    with snapshot_error_guard(path):
        final = resolve_collision(path.parent, path.name, plan.desired_name, apply=flags.apply, exists=exists)

    if final == path.name:
        return RenameOutcome(path=path, status="noop", old_name=path.name, source_url=plan.source_url)

    return RenameOutcome(
        path=path,
        status="renamed" if flags.apply else "dry_run",
        old_name=path.name,
        new_name=final,
        source_url=plan.source_url,
    )


def iter_snapshot_files(root: Path) -> Iterator[Path]:
    """Snapshot files under `root` (recursive, sorted). The listing is taken up front."""
    if root.is_file():
        if has_snapshot_ext(root.name):
            yield root
        return
    for p in sorted(root.rglob("*")):
        if p.is_file() and has_snapshot_ext(p.name):
            yield p


class _DryRunNamespace:
    """
    Tracks names claimed/vacated during a dry run so the preview matches what
    apply mode would do when several files want the same name.
    """

    def __init__(self) -> None:
        self._claimed: dict[Path, set[str]] = defaultdict(set)
        self._vacated: dict[Path, set[str]] = defaultdict(set)

    def exists_fn(self, path: Path) -> ExistsFn:
        directory = path.parent

        def _exists(name: str) -> bool:
            if name in self._claimed[directory]:
                return True
            if name in self._vacated[directory]:
                return False
            return _occupied(directory, path.name, name)

        return _exists

    def record(self, outcome: RenameOutcome) -> None:
        if outcome.status == "dry_run" and outcome.new_name:
            directory = outcome.path.parent
            self._claimed[directory].add(outcome.new_name)
            self._vacated[directory].add(outcome.old_name)
            self._claimed[directory].discard(outcome.old_name)


def format_outcome(outcome: RenameOutcome) -> str | None:
    """One report line per outcome; None for no-ops."""
    if outcome.status == "renamed":
        return f"RENAME  {outcome.old_name}  ->  {outcome.new_name}"
    if outcome.status == "dry_run":
        return f"DRYRUN  {outcome.old_name}  ->  {outcome.new_name}"
    if outcome.status == "error":
        return f"ERR  {outcome.path}: {outcome.message}"
    return None


def canonicalize_tree(
    root: Path,
    flags: CanonicalizeFlags,
    *,
    now: datetime | None = None,
    report: Callable[[str], None] | None = None,
) -> list[RenameOutcome]:
    """
    Canonicalize every snapshot under `root`.

    A failure on one file is logged and recorded as an `error` outcome; the
    run continues with the remaining files.
    """
    outcomes: list[RenameOutcome] = []
    namespace = None if flags.apply else _DryRunNamespace()

    for path in iter_snapshot_files(root):
        try:
            outcome = canonicalize_file(
                path,
                flags,
                now=now,
                exists=namespace.exists_fn(path) if namespace is not None else None,
            )
        except SnapshotError as e:
            logger.warning("skipping %s: %s", path, e)
            outcome = RenameOutcome(path=path, status="error", old_name=path.name, message=str(e))

        if namespace is not None:
            namespace.record(outcome)
        outcomes.append(outcome)

        line = format_outcome(outcome)
        if line and report and not flags.quiet:
            report(line)

    return outcomes


__all__ = [
    "plan_canonical_name",
    "canonicalize_file",
    "canonicalize_tree",
    "iter_snapshot_files",
    "format_outcome",
]
