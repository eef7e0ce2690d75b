# snapnorm/core/naming/collision.py

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path

from ..errors import SnapshotWriteError
from .filename import split_name_ext

logger = logging.getLogger(__name__)

# Safety valve for pathological directories
_MAX_SUFFIX = 100_000


def _occupied(directory: Path, current_name: str, candidate: str) -> bool:
    """True if `candidate` names an existing entry other than the current file."""
    target = directory / candidate
    if not os.path.lexists(target):
        return False
    current = directory / current_name
    try:
        # case-only renames on case-insensitive filesystems
        return not os.path.samefile(target, current)
    except OSError:
        return True


def candidate_names(desired_name: str) -> Iterator[str]:
    """desired, then <name>-2<ext>, <name>-3<ext>, ..."""
    yield desired_name
    stem, ext = split_name_ext(desired_name)
    for n in range(2, _MAX_SUFFIX):
        yield f"{stem}-{n}{ext}"


def resolve_collision(
    directory: Path,
    current_name: str,
    desired_name: str,
    *,
    apply: bool = False,
    exists: Callable[[str], bool] | None = None,
) -> str:
    """
    Return a name in `directory` that `current_name` can take without overwriting anything.

    - desired == current → returned unchanged (not a collision)
    - desired taken → try <name>-2<ext>, <name>-3<ext>, ... re-checking each one
    - a generated candidate equal to the current name means the file already
      holds its resolved name → returned as-is
    - apply=True performs the rename; existence is re-checked right before it
    - apply=False never touches the filesystem (`exists` may be injected for planning)
    """
    if desired_name == current_name:
        return current_name

    is_taken = exists or (lambda name: _occupied(directory, current_name, name))

    for candidate in candidate_names(desired_name):
        if candidate == current_name:
            return candidate
        if is_taken(candidate):
            continue
        if not apply:
            return candidate

        # re-check at time of write, another writer may have taken it meanwhile
        if _occupied(directory, current_name, candidate):
            logger.info("name %s appeared while renaming %s; trying next suffix", candidate, current_name)
            continue
        try:
            (directory / current_name).rename(directory / candidate)
        except OSError as e:
            raise SnapshotWriteError(f"rename {current_name} -> {candidate} failed: {e}") from e
        return candidate

    raise SnapshotWriteError(f"no free name for {desired_name} in {directory}")


__all__ = ["candidate_names", "resolve_collision"]
