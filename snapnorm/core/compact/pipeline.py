# snapnorm/core/compact/pipeline.py
"""
Per-document compaction: read, strip, recompress (or externalize), write.

The document on disk is rewritten at most once, atomically, and only when
its content actually changed.
"""

from __future__ import annotations

import logging
from pathlib import Path

from snapnorm.schemas.models import CompactionPolicy, CompactOutcome, StripResult

from ..errors import SnapshotWriteError, snapshot_error_guard
from ..storage import read_snapshot, utf8_size, write_text_atomic
from .budget import compact_to_budget
from .externalize import externalize_images
from .recompress import RecompressionCache
from .strip import strip_fonts, strip_large_styles, strip_scripts, strip_tracking_iframes

logger = logging.getLogger(__name__)


def apply_strip_filters(text: str, policy: CompactionPolicy) -> tuple[str, list[StripResult]]:
    """Run the stripping filters enabled in `policy`, in a fixed order."""
    results: list[StripResult] = []
    if policy.strip_fonts:
        text, r = strip_fonts(text)
        results.append(r)
    if policy.strip_scripts:
        text, r = strip_scripts(text)
        results.append(r)
    if policy.strip_tracking_iframes:
        text, r = strip_tracking_iframes(text)
        results.append(r)
    if policy.strip_large_styles:
        text, r = strip_large_styles(text, policy.style_threshold)
        results.append(r)
    return text, results


def compact_text(text: str, document: Path, policy: CompactionPolicy) -> tuple[str, CompactOutcome]:
    """
    Compaction of already-loaded document text. `document` is only used to
    place externalized assets; nothing is written for the document itself.
    """
    bytes_before = utf8_size(text)
    cache = RecompressionCache()

    text, strips = apply_strip_filters(text, policy)

    compaction = None
    externalized = None
    if policy.extract_images:
        text, externalized = externalize_images(text, document, policy, cache=cache)
    else:
        text, compaction = compact_to_budget(text, policy, cache=cache)

    outcome = CompactOutcome(
        path=document,
        bytes_before=bytes_before,
        bytes_after=utf8_size(text),
        strips=strips,
        compaction=compaction,
        externalized=externalized,
    )
    return text, outcome


def _discard_assets(outcome: CompactOutcome) -> None:
    """Remove the asset files of a run whose document was never rewritten to reference them."""
    if outcome.externalized is None or not outcome.externalized.assets:
        return
    for asset in outcome.externalized.assets:
        try:
            asset.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("could not remove orphan asset %s: %s", asset.path, e)
    logger.warning(
        "%s: document not written, removed %d new asset(s) from %s",
        outcome.path,
        len(outcome.externalized.assets),
        outcome.externalized.asset_dir,
    )


def compact_file(path: Path, policy: CompactionPolicy) -> CompactOutcome:
    """
    Compact one snapshot in place.

    Raises SnapshotReadError / SnapshotWriteError; the file is untouched when
    either is raised for the document itself.
    """
    original = read_snapshot(path, strict=True)
    with snapshot_error_guard(path):
        text, outcome = compact_text(original, path, policy)

    if text != original:
        try:
            write_text_atomic(path, text)
        except SnapshotWriteError:
            _discard_assets(outcome)
            raise
        outcome = outcome.model_copy(update={"written": True})
        logger.info("%s: rewritten, %d -> %d bytes", path, outcome.bytes_before, outcome.bytes_after)
    else:
        logger.info("%s: nothing to change", path)
    return outcome


__all__ = ["apply_strip_filters", "compact_text", "compact_file"]
