# snapnorm/core/errors.py
"""
Typed errors + utilities for snapshot normalization.

Exports
-------
- SnapshotError, ConfigurationError, SnapshotReadError, SnapshotWriteError,
  ResourceRecompressError
- classify_snapshot_error(exc, path=None)
- snapshot_error_guard(path=None)

Taxonomy
--------
- ResourceRecompressError: one embedded payload failed to decode/encode. The
  payload keeps its original bytes and the document carries on.
- SnapshotReadError / SnapshotWriteError: one document in a batch could not be
  read or written. Logged; the batch carries on.
- ConfigurationError: bad/missing CLI input. Fatal, raised before any side effect.

"No URL found" and "name already canonical" are statuses, never exceptions.
"""

from __future__ import annotations

import binascii
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

# =========================
# Exception types
# =========================


class SnapshotError(RuntimeError):
    """Base class for snapshot normalization failures."""


class ConfigurationError(SnapshotError):
    """Required input missing or invalid; nothing has been touched."""


class SnapshotReadError(SnapshotError):
    """A snapshot file could not be read or decoded as text."""


class SnapshotWriteError(SnapshotError):
    """A snapshot (or one of its assets) could not be written or renamed."""


class ResourceRecompressError(SnapshotError):
    """A single embedded resource could not be decoded or re-encoded."""


# =========================
# Classification helpers
# =========================


def classify_snapshot_error(exc: Exception, *, path: Path | None = None) -> SnapshotError:
    """
    Map arbitrary exceptions raised while processing one file to a typed SnapshotError.

    Heuristics:
      - Any SnapshotError subclass → passed through
      - UnicodeDecodeError → SnapshotReadError
      - FileNotFoundError / IsADirectoryError / PermissionError on read → SnapshotReadError
      - Other OSError → SnapshotWriteError (rename/replace/mkdir failures)
      - binascii.Error / ValueError → ResourceRecompressError
      - Fallback → SnapshotError
    """
    if isinstance(exc, SnapshotError):
        return exc

    where = f"{path}: " if path is not None else ""
    msg = f"{where}{type(exc).__name__}: {exc}"

    if isinstance(exc, UnicodeDecodeError):
        return SnapshotReadError(msg)
    if isinstance(exc, (FileNotFoundError, IsADirectoryError, PermissionError)):
        return SnapshotReadError(msg)
    if isinstance(exc, OSError):
        return SnapshotWriteError(msg)
    if isinstance(exc, (binascii.Error, ValueError)):
        return ResourceRecompressError(msg)
    return SnapshotError(msg)


@contextmanager
def snapshot_error_guard(path: Path | None = None) -> Iterator[None]:
    """Context manager to normalize unexpected exceptions from per-file processing."""
    try:
        yield
    except SnapshotError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise classify_snapshot_error(exc, path=path) from exc


__all__ = [
    "SnapshotError",
    "ConfigurationError",
    "SnapshotReadError",
    "SnapshotWriteError",
    "ResourceRecompressError",
    "classify_snapshot_error",
    "snapshot_error_guard",
]
