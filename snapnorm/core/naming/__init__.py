from .canonicalizer import canonicalize_file, canonicalize_tree, format_outcome, iter_snapshot_files, plan_canonical_name
from .collision import resolve_collision
from .filename import (
    SNAPSHOT_EXT_RE,
    datetime_suffix_for,
    format_datetime_suffix,
    has_snapshot_ext,
    sanitize_filename,
    split_name_ext,
)
from .flatten import flatten_url
from .url_extract import extract_source_url, normalize_candidate_url, normalize_fullwidth

__all__ = [
    "extract_source_url",
    "normalize_candidate_url",
    "normalize_fullwidth",
    "flatten_url",
    "resolve_collision",
    "SNAPSHOT_EXT_RE",
    "datetime_suffix_for",
    "format_datetime_suffix",
    "has_snapshot_ext",
    "sanitize_filename",
    "split_name_ext",
    "plan_canonical_name",
    "canonicalize_file",
    "canonicalize_tree",
    "iter_snapshot_files",
    "format_outcome",
]
