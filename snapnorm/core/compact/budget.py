# snapnorm/core/compact/budget.py
"""
Budget loop: repeat whole-document recompression passes, tightening
(quality, width) between passes, until the document fits the byte budget.

States
------
  scanning              a pass is due
  converged             size <= target
  stalled               a pass replaced nothing or did not shrink the document
                        (also: caller's max_passes reached)
  exhausted_parameters  quality and width both at their floors, target unmet

Parameter schedule: quality drops by quality_step to quality_floor first,
then width drops by width_step to width_floor. The grid is finite, so the
loop always terminates; the document is never made larger by a pass.
"""

from __future__ import annotations

import logging

from snapnorm.schemas.models import CompactionPolicy, CompactionReport, LoopState, PassResult

from ..storage import utf8_size
from .recompress import RecompressionCache, recompress_document

logger = logging.getLogger(__name__)


def next_parameters(quality: int, width: int, policy: CompactionPolicy) -> tuple[int, int] | None:
    """Tightened (quality, width) for the next pass, or None once both sit at their floors."""
    q_floor = min(policy.quality_floor, policy.quality)
    w_floor = min(policy.width_floor, policy.max_width)
    if quality > q_floor:
        return max(q_floor, quality - policy.quality_step), width
    if width > w_floor:
        return quality, max(w_floor, width - policy.width_step)
    return None


def compact_to_budget(
    text: str,
    policy: CompactionPolicy,
    *,
    cache: RecompressionCache | None = None,
) -> tuple[str, CompactionReport]:
    """
    Drive recompression passes over `text` until it fits `policy.target_bytes`.

    target_bytes=None means "current size": exactly one pass at the starting
    parameters. An explicit target already met returns immediately (no pass).
    """
    cache = cache if cache is not None else RecompressionCache()
    size = utf8_size(text)
    bytes_before = size
    explicit_target = policy.target_bytes is not None
    target = policy.target_bytes if policy.target_bytes is not None else size

    quality, width = policy.quality, policy.max_width
    passes: list[PassResult] = []
    state: LoopState = "scanning"

    if explicit_target and size <= target:
        state = "converged"

    while state == "scanning":
        if policy.max_passes is not None and len(passes) >= policy.max_passes:
            logger.info("pass limit %d reached at %d bytes (target %d)", policy.max_passes, size, target)
            state = "stalled"
            break

        new_text, stats = recompress_document(
            text, max_width=width, quality=quality, gif_to_webp=policy.gif_to_webp, cache=cache
        )
        new_size = utf8_size(new_text)
        passes.append(
            PassResult(
                index=len(passes) + 1,
                quality=quality,
                max_width=width,
                resources=stats.resources,
                replacements=stats.replacements,
                failures=stats.failures,
                bytes_before=size,
                bytes_after=new_size,
            )
        )
        logger.info(
            "pass %d (q=%d, w=%d): %d/%d replaced, %d -> %d bytes",
            len(passes),
            quality,
            width,
            stats.replacements,
            stats.resources,
            size,
            new_size,
        )

        shrank = new_size < size
        if new_size <= size:
            text, size = new_text, new_size

        if size <= target:
            state = "converged"
        elif stats.replacements == 0 or not shrank:
            state = "stalled"
        else:
            tightened = next_parameters(quality, width, policy)
            if tightened is None:
                state = "exhausted_parameters"
            else:
                quality, width = tightened

    report = CompactionReport(
        state=state,
        target_bytes=target,
        bytes_before=bytes_before,
        bytes_after=size,
        passes=passes,
        encodes=cache.encodes,
        cache_hits=cache.hits,
    )
    return text, report


__all__ = ["compact_to_budget", "next_parameters"]
