# snapnorm/core/naming/filename.py
"""
Canonical snapshot filename grammar:

    <scheme>__<host>_<flattened-path>-<YYYY-MM-DDTHH_MM_SS_mmm>Z<ext>

with <ext> one of .html, .zip, .zip.html, .u.zip.html (kept verbatim from the
original name). Collision variants append -2, -3, ... before the extension.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

from .url_extract import normalize_fullwidth

# Compound extensions first so ".u.zip.html" is not taken for ".html"
SNAPSHOT_EXT_RE = re.compile(r"\.(?:u\.zip\.html|zip\.html|html|zip)$", re.IGNORECASE)
DEFAULT_EXT = ".html"

# -2021-04-05T09_08_07_123Z / -2021-04-05T09:08:07.123Z / full-width ： and ．
_DATETIME_IN_NAME_RE = re.compile(
    r"-(\d{4}-\d{2}-\d{2}T\d{2}[:：_]\d{2}[:：_]\d{2}(?:[._．]\d{3})?Z)"
    r"(?=(?:-\d+)?(?:\.u\.zip\.html|\.zip\.html|\.html|\.zip)?$)",
    re.IGNORECASE,
)
_MILLIS_TAIL_RE = re.compile(r"_\d{3}Z$")

PLACEHOLDER = "_"
_UNSAFE_RUN_RE = re.compile(r'[~+\\?%*:|"<>/\x00-\x1f\x7f]+')
_WHITESPACE_RUN_RE = re.compile(r"\s+")
_LEADING_NOISE = PLACEHOLDER + " ."
_TRAILING_NOISE = PLACEHOLDER + " .-"


def has_snapshot_ext(name: str) -> bool:
    return SNAPSHOT_EXT_RE.search(name) is not None


def snapshot_ext(name: str) -> str:
    """The original extension, verbatim (case included); '.html' if none is recognized."""
    m = SNAPSHOT_EXT_RE.search(name)
    return m.group(0) if m else DEFAULT_EXT


def split_name_ext(base: str) -> tuple[str, str]:
    """Split on the known (compound) snapshot extension, else on the last dot."""
    m = SNAPSHOT_EXT_RE.search(base)
    if m:
        return base[: m.start()], m.group(0)
    idx = base.rfind(".")
    if idx <= 0:
        return base, ""
    return base[:idx], base[idx:]


# -----------------------
# Datetime suffix
# -----------------------


def format_datetime_suffix(moment: datetime) -> str:
    """2025-09-07T14:50:55.735+00:00 -> 2025-09-07T14_50_55_735Z"""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H_%M_%S_") + f"{moment.microsecond // 1000:03d}Z"


def normalize_datetime_suffix(raw: str) -> str:
    """Fold full-width punctuation and turn ':' / '.' into '_'; add '_000' when ms are absent."""
    dt = normalize_fullwidth(raw).replace(":", "_").replace(".", "_")
    dt = dt[:-1] + "Z"
    if _MILLIS_TAIL_RE.search(dt) is None:
        dt = dt[:-1] + "_000Z"
    return dt


def find_datetime_suffix(name: str) -> str | None:
    """Datetime suffix embedded in an existing filename, normalized; None if there is none."""
    m = _DATETIME_IN_NAME_RE.search(name)
    if not m:
        return None
    return normalize_datetime_suffix(m.group(1))


def datetime_suffix_for(name: str, *, now: datetime | None = None) -> str:
    """Carry over the suffix from `name`, or synthesize one from `now` (UTC wall clock)."""
    found = find_datetime_suffix(name)
    if found:
        return found
    return format_datetime_suffix(now or datetime.now(timezone.utc))


# -----------------------
# Sanitizing
# -----------------------


def sanitize_filename(name: str) -> str:
    """
    Make a composed name filesystem-safe.

    - full-width punctuation -> ASCII
    - every run of reserved/control characters -> one '_'
    - whitespace runs -> one space
    - stray '_', spaces and dots trimmed at the start
    - stray '_', spaces, dots and '-' trimmed right before the extension
    """
    name = normalize_fullwidth(name)
    name = _UNSAFE_RUN_RE.sub(PLACEHOLDER, name)
    name = _WHITESPACE_RUN_RE.sub(" ", name)

    m = SNAPSHOT_EXT_RE.search(name)
    stem, ext = (name[: m.start()], m.group(0)) if m else (name, "")
    trimmed = stem.lstrip(_LEADING_NOISE).rstrip(_TRAILING_NOISE)
    if not trimmed:
        return name.strip()
    return trimmed + ext


def compose_canonical_name(flat_url: str, dt_suffix: str, ext: str) -> str:
    return sanitize_filename(f"{flat_url}-{dt_suffix}{ext}")


__all__ = [
    "SNAPSHOT_EXT_RE",
    "DEFAULT_EXT",
    "PLACEHOLDER",
    "has_snapshot_ext",
    "snapshot_ext",
    "split_name_ext",
    "format_datetime_suffix",
    "normalize_datetime_suffix",
    "find_datetime_suffix",
    "datetime_suffix_for",
    "sanitize_filename",
    "compose_canonical_name",
]
