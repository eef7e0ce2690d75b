# tests/unit/test_errors.py
from __future__ import annotations

import binascii
from pathlib import Path

import pytest

from snapnorm.core.errors import (
    ConfigurationError,
    ResourceRecompressError,
    SnapshotError,
    SnapshotReadError,
    SnapshotWriteError,
    classify_snapshot_error,
    snapshot_error_guard,
)


@pytest.mark.parametrize(
    "exc, expected",
    [
        (UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"), SnapshotReadError),
        (FileNotFoundError(2, "No such file"), SnapshotReadError),
        (PermissionError(13, "Permission denied"), SnapshotReadError),
        (OSError(28, "No space left on device"), SnapshotWriteError),
        (binascii.Error("Incorrect padding"), ResourceRecompressError),
        (ValueError("bad"), ResourceRecompressError),
        (KeyError("x"), SnapshotError),
    ],
)
def test_classification(exc, expected):
    err = classify_snapshot_error(exc, path=Path("a.html"))
    assert type(err) is expected
    assert str(err).startswith("a.html: ")


def test_typed_errors_pass_through():
    original = ConfigurationError("bad flag")
    assert classify_snapshot_error(original) is original


def test_guard_wraps_and_chains():
    with pytest.raises(SnapshotWriteError) as ei:
        with snapshot_error_guard(Path("x.html")):
            raise OSError(5, "I/O error")
    assert isinstance(ei.value.__cause__, OSError)


def test_guard_leaves_typed_errors_alone():
    with pytest.raises(SnapshotReadError, match="already typed"):
        with snapshot_error_guard():
            raise SnapshotReadError("already typed")


def test_hierarchy():
    for cls in (ConfigurationError, SnapshotReadError, SnapshotWriteError, ResourceRecompressError):
        assert issubclass(cls, SnapshotError)
    assert issubclass(SnapshotError, RuntimeError)
