# snapnorm/core/compact/strip.py
"""
Content stripping filters.

Each filter is an independent text -> (text, StripResult) transform. None of
them depends on another having run, and the order they run in does not
matter. Blocks are located with the same forward-scan approach as the
payload scanner; a block with no closing delimiter is left alone.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator

from bs4 import BeautifulSoup

from snapnorm.schemas.models import StripResult

from .scanner import scan_data_uris

logger = logging.getLogger(__name__)

DEFAULT_STYLE_THRESHOLD = 256 * 1024
EMPTY_DATA_URI = "data:,"

_FONT_MARKERS = (
    "data:font",
    "data:application/font",
    "data:application/x-font",
    "data:application/vnd.ms-fontobject",
)

# Third-party iframes injected for metrics/tracking (matched on name/id/src/title)
TRACKING_IFRAME_PATTERNS = (
    "__privatestripemetricscontroller",
    "__privatestripecontroller",
    "js.stripe.com",
    "m.stripe.network",
    "m.stripe.com",
    "hooks.stripe.com",
    "googletagmanager.com/ns.html",
    "doubleclick.net",
    "facebook.com/tr",
    "connect.facebook.net",
)
_IFRAME_ID_ATTRS = ("name", "id", "src", "title", "data-src")

# Opening tag: quoted attribute values may contain '>'
_OPEN_TAG_RE = re.compile(r"""<[a-zA-Z][^\s/>]*(?:[^>"']|"[^"]*"|'[^']*')*>""")
_FONT_FACE_RE = re.compile(r"@font-face\b", re.IGNORECASE)
_DATA_SRCSET_RE = re.compile(r"""\s+srcset\s*=\s*(?:"([^"]*)"|'([^']*)')""", re.IGNORECASE)

_block_res: dict[str, tuple[re.Pattern[str], re.Pattern[str]]] = {}


def _block_patterns(tag: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    pats = _block_res.get(tag)
    if pats is None:
        pats = _block_res[tag] = (
            re.compile(rf"<{tag}\b", re.IGNORECASE),
            re.compile(rf"</{tag}\s*>", re.IGNORECASE),
        )
    return pats


def _utf8_len(s: str) -> int:
    return len(s.encode("utf-8"))


def _open_tag_end(text: str, start: int) -> int:
    """Offset just past the opening tag starting at `start`; -1 if it never closes."""
    m = _OPEN_TAG_RE.match(text, start)
    if m:
        return m.end()
    gt = text.find(">", start)
    return -1 if gt == -1 else gt + 1


def _iter_elements(text: str, tag: str) -> Iterator[tuple[int, int, int]]:
    """Yield (start, open_tag_end, end) for each complete <tag>...</tag> element."""
    open_re, close_re = _block_patterns(tag)
    pos = 0
    while True:
        m = open_re.search(text, pos)
        if not m:
            return
        open_end = _open_tag_end(text, m.start())
        if open_end == -1:
            return
        if text[open_end - 2 : open_end] == "/>":
            yield m.start(), open_end, open_end
            pos = open_end
            continue
        close = close_re.search(text, open_end)
        if not close:
            return
        yield m.start(), open_end, close.end()
        pos = close.end()


def _remove_spans(text: str, spans: list[tuple[int, int]]) -> tuple[str, int]:
    """Drop the (sorted, disjoint) spans; return new text and UTF-8 bytes removed."""
    if not spans:
        return text, 0
    parts: list[str] = []
    removed = 0
    last = 0
    for start, end in spans:
        parts.append(text[last:start])
        removed += _utf8_len(text[start:end])
        last = end
    parts.append(text[last:])
    return "".join(parts), removed


def _strip_elements(
    text: str,
    tag: str,
    name: str,
    keep: Callable[[str, int, int, int], bool] | None = None,
) -> tuple[str, StripResult]:
    spans = [
        (start, end)
        for start, open_end, end in _iter_elements(text, tag)
        if keep is None or not keep(text, start, open_end, end)
    ]
    new_text, removed = _remove_spans(text, spans)
    if spans:
        logger.info("%s: removed %d block(s), %d bytes", name, len(spans), removed)
    return new_text, StripResult(name=name, removed=len(spans), bytes_removed=removed)


# -----------------------
# Filters
# -----------------------


def strip_scripts(text: str) -> tuple[str, StripResult]:
    """Remove every <script>...</script> block."""
    return _strip_elements(text, "script", "scripts")


def strip_large_styles(text: str, threshold: int = DEFAULT_STYLE_THRESHOLD) -> tuple[str, StripResult]:
    """Remove <style> blocks whose serialized UTF-8 size exceeds `threshold`."""

    def _keep(t: str, start: int, _open_end: int, end: int) -> bool:
        # cheap upper bound first: UTF-8 never uses more than 4 bytes per char
        if (end - start) * 4 <= threshold:
            return True
        return _utf8_len(t[start:end]) <= threshold

    return _strip_elements(text, "style", "large_styles", keep=_keep)


def _is_tracking_iframe(open_tag: str) -> bool:
    soup = BeautifulSoup(open_tag + "</iframe>", "html.parser")
    el = soup.find("iframe")
    if el is None:
        return False
    values = " ".join(str(el.get(attr) or "") for attr in _IFRAME_ID_ATTRS).lower()
    return any(p in values for p in TRACKING_IFRAME_PATTERNS)


def strip_tracking_iframes(text: str) -> tuple[str, StripResult]:
    """Remove known third-party tracking iframes (Stripe controllers, GTM, DoubleClick, FB pixel)."""

    def _keep(t: str, start: int, open_end: int, _end: int) -> bool:
        return not _is_tracking_iframe(t[start:open_end])

    return _strip_elements(text, "iframe", "tracking_iframes", keep=_keep)


def _font_face_spans(text: str) -> list[tuple[int, int]]:
    spans: list[tuple[int, int]] = []
    pos = 0
    while True:
        m = _FONT_FACE_RE.search(text, pos)
        if not m:
            return spans
        brace = text.find("{", m.end())
        if brace == -1 or text[m.end() : brace].strip():
            pos = m.end()
            if brace == -1:
                return spans
            continue
        close = text.find("}", brace + 1)
        if close == -1:
            return spans
        spans.append((m.start(), close + 1))
        pos = close + 1


def strip_fonts(text: str) -> tuple[str, StripResult]:
    """
    Remove @font-face rules, then blank any other embedded font payload
    (preload links, inline CSS) to the empty data URI.
    """
    spans = _font_face_spans(text)
    text, removed_bytes = _remove_spans(text, spans)
    removed = len(spans)

    for marker in _FONT_MARKERS:
        parts: list[str] = []
        last = 0
        for res in scan_data_uris(text, marker=marker):
            parts.append(text[last : res.start])
            parts.append(EMPTY_DATA_URI)
            removed_bytes += _utf8_len(text[res.start : res.end]) - len(EMPTY_DATA_URI)
            removed += 1
            last = res.end
        if parts:
            parts.append(text[last:])
            text = "".join(parts)

    if removed:
        logger.info("fonts: removed %d rule(s)/payload(s), %d bytes", removed, removed_bytes)
    return text, StripResult(name="fonts", removed=removed, bytes_removed=removed_bytes)


def strip_data_srcset(text: str) -> tuple[str, StripResult]:
    """Drop srcset attributes that carry inline data: candidates."""
    spans: list[tuple[int, int]] = []
    for m in _DATA_SRCSET_RE.finditer(text):
        value = m.group(1) if m.group(1) is not None else m.group(2)
        if "data:" in value.lower():
            spans.append(m.span())
    new_text, removed = _remove_spans(text, spans)
    return new_text, StripResult(name="data_srcset", removed=len(spans), bytes_removed=removed)


__all__ = [
    "DEFAULT_STYLE_THRESHOLD",
    "TRACKING_IFRAME_PATTERNS",
    "strip_fonts",
    "strip_scripts",
    "strip_large_styles",
    "strip_tracking_iframes",
    "strip_data_srcset",
]
