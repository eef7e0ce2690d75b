# snapnorm/core/storage.py
"""
Filesystem helpers: content hashing, per-document asset layout and
all-or-nothing writes.
"""

from __future__ import annotations

import os
import re
import tempfile
from hashlib import sha256 as _sha256lib
from pathlib import Path

from .errors import SnapshotReadError, snapshot_error_guard

# Extensions stripped from a document name to build its asset slug (longest first)
_DOC_EXT_RE = re.compile(r"\.(?:u\.zip\.html|zip\.html|html?|zip)$", re.IGNORECASE)


def _sha256(data: bytes | str) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8", errors="ignore")
    return _sha256lib(data).hexdigest()


def document_slug(path: Path) -> str:
    """File name without its (possibly compound) snapshot extension."""
    return _DOC_EXT_RE.sub("", path.name) or path.name


def asset_dir_for(document: Path, asset_root: Path) -> Path:
    """
    Per-document asset directory.

    Layout:
      <asset_root>/<document slug>/img-0000-<hash12>.webp
    """
    return asset_root / document_slug(document)


def read_snapshot(path: Path, *, strict: bool = True) -> str:
    """
    Read a snapshot as UTF-8 text.

    strict=True (anything that will be rewritten): undecodable bytes are a
    per-file failure. strict=False (read-only metadata lookups): they are replaced.
    """
    with snapshot_error_guard(path):
        data = path.read_bytes()
        if not strict:
            return data.decode("utf-8", errors="replace")
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SnapshotReadError(f"{path}: not valid UTF-8 ({e.reason} at byte {e.start})") from e


def write_bytes_atomic(path: Path, data: bytes) -> None:
    """
    Write `data` to `path` so readers only ever see the old or the new content.

    The bytes land in a temp file in the same directory, are flushed to disk,
    then swapped in with os.replace.
    """
    with snapshot_error_guard(path):
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(prefix=".snapnorm_", suffix=".part", delete=False, dir=str(path.parent)) as tf:
            tmp_path = Path(tf.name)
            try:
                tf.write(data)
                tf.flush()
                os.fsync(tf.fileno())
            except BaseException:
                tf.close()
                tmp_path.unlink(missing_ok=True)
                raise
        try:
            tmp_path.replace(path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise


def write_text_atomic(path: Path, text: str) -> None:
    write_bytes_atomic(path, text.encode("utf-8"))


def utf8_size(text: str) -> int:
    return len(text.encode("utf-8"))


__all__ = [
    "_sha256",
    "document_slug",
    "asset_dir_for",
    "read_snapshot",
    "write_bytes_atomic",
    "write_text_atomic",
    "utf8_size",
]
