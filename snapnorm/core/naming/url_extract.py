# snapnorm/core/naming/url_extract.py
"""
Source-URL extraction for captured snapshots.

Signals, highest priority first (prefer_canonical=True):
  1. <link rel="canonical" href="...">
  2. <meta property="og:url" content="...">
  3. <meta name="twitter:url" content="...">
  4. capture-tool comment: "saved from url=(0042)https://..." or the
     SingleFile header comment ("Page saved with SingleFile ... url: https://...")

With prefer_canonical=False the social-meta URLs outrank the canonical link.

The extractor never builds a tree of the whole document: a forward scan
collects only <link>/<meta> tag snippets, and BeautifulSoup parses them one at a time.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from urllib.parse import urlsplit, urlunsplit

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# -----------------------
# Full-width punctuation
# -----------------------

# U+FF01..U+FF5E mirror ASCII 0x21..0x7E; only the punctuation half is folded
_FULLWIDTH_PUNCT = {
    cp: cp - 0xFEE0 for cp in range(0xFF01, 0xFF5F) if not chr(cp - 0xFEE0).isalnum()
}
_FULLWIDTH_PUNCT[0x3000] = 0x20  # ideographic space


def normalize_fullwidth(s: str) -> str:
    """Map full-width punctuation look-alikes (／ ： ？ ＊ ...) to their ASCII equivalents."""
    return s.translate(_FULLWIDTH_PUNCT)


# -----------------------
# Candidate normalization
# -----------------------

_HTTP_PREFIX_RE = re.compile(r"^https?://", re.IGNORECASE)
_SURROUNDING_QUOTES_RE = re.compile(r"^['\"]+|['\"]+$")


def normalize_candidate_url(raw: str | None) -> str | None:
    """
    Single cleanup routine applied to every candidate signal.

    Returns the normalized URL, or None when the candidate is unusable:
      - full-width punctuation folded, whitespace and surrounding quotes trimmed
      - must start with http:// or https://
      - must parse, with a host and a valid port
      - query and fragment dropped, scheme and host lowercased, empty path -> "/"
    """
    if not raw:
        return None
    s = normalize_fullwidth(raw).strip()
    s = _SURROUNDING_QUOTES_RE.sub("", s).strip()
    if not _HTTP_PREFIX_RE.match(s):
        return None
    if any(ch.isspace() or ord(ch) < 0x20 or ord(ch) == 0x7F for ch in s):
        return None

    try:
        parts = urlsplit(s)
        host = parts.hostname
        port = parts.port
    except ValueError:
        return None
    if not host:
        return None

    host = host.lower()
    if ":" in host:  # IPv6 literal
        host = f"[{host}]"
    netloc = host if port is None else f"{host}:{port}"
    if parts.username is not None:
        userinfo = parts.username if parts.password is None else f"{parts.username}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    return urlunsplit((parts.scheme.lower(), netloc, parts.path or "/", "", ""))


# -----------------------
# Signal finders
# -----------------------

_TAG_START_RE = re.compile(r"<(?:link|meta)\b", re.IGNORECASE)
# Whole opening tag; quoted attribute values may contain '>'
_TAG_RE = re.compile(r"""<(?:link|meta)\b(?:[^>"']|"[^"]*"|'[^']*')*>""", re.IGNORECASE)
_MAX_TAG_LEN = 8192
_SAVED_FROM_RE = re.compile(r"saved from url=\([^)]{0,16}\)\s*([^\s\"'<>]+)", re.IGNORECASE)
_SINGLEFILE_URL_RE = re.compile(r"Page saved with SingleFile\s*url:\s*([^\s\"'<>]+)", re.IGNORECASE)
_PREAMBLE_LEN = 64 * 1024


def _iter_tag_snippets(html: str) -> Iterator[str]:
    """Yield raw `<link ...>` / `<meta ...>` tags in document order."""
    pos = 0
    while True:
        m = _TAG_START_RE.search(html, pos)
        if not m:
            return
        limit = m.start() + _MAX_TAG_LEN
        tag = _TAG_RE.match(html, m.start(), limit)
        if tag:
            end = tag.end()
        else:
            gt = html.find(">", m.end(), limit)
            if gt == -1:
                pos = m.end()
                continue
            end = gt + 1
        yield html[m.start() : end]
        # resume inside the snippet: an unclosed quote may have run over later tags
        pos = m.end()


def _head_signals(html: str) -> dict[str, list[str]]:
    """
    Collect canonical/og:url/twitter:url values (document order) from link/meta tags.

    Each snippet is parsed on its own, so a malformed tag cannot swallow the
    tags after it.
    """
    found: dict[str, list[str]] = {"canonical": [], "og:url": [], "twitter:url": []}
    for snippet in _iter_tag_snippets(html):
        tag = BeautifulSoup(snippet, "html.parser").find(["link", "meta"])
        if tag is None:
            continue
        if tag.name == "link":
            rel = tag.get("rel") or []
            if isinstance(rel, str):
                rel = rel.split()
            if any(r.lower() == "canonical" for r in rel):
                href = tag.get("href")
                if href:
                    found["canonical"].append(href)
            continue

        key = (tag.get("property") or tag.get("name") or "").strip().lower()
        if key in ("og:url", "twitter:url"):
            content = tag.get("content")
            if content:
                found[key].append(content)
    return found


def _saved_from_signals(html: str) -> list[str]:
    preamble = html[:_PREAMBLE_LEN]
    out = [m.group(1) for m in _SAVED_FROM_RE.finditer(preamble)]
    out.extend(m.group(1) for m in _SINGLEFILE_URL_RE.finditer(preamble))
    return out


def iter_url_candidates(html: str, *, prefer_canonical: bool = True) -> Iterator[tuple[str, str]]:
    """Yield (signal, raw value) pairs in priority order. Raw values are not normalized."""
    head = _head_signals(html)
    order = ("canonical", "og:url", "twitter:url") if prefer_canonical else ("og:url", "twitter:url", "canonical")
    for signal in order:
        for raw in head[signal]:
            yield signal, raw
    for raw in _saved_from_signals(html):
        yield "saved-from", raw


def extract_source_url(html: str, *, prefer_canonical: bool = True) -> str | None:
    """
    Return the best source URL for a snapshot, or None when no signal normalizes.

    Later signals are never consulted once one candidate succeeds.
    """
    for signal, raw in iter_url_candidates(html, prefer_canonical=prefer_canonical):
        url = normalize_candidate_url(raw)
        if url:
            logger.debug("source url from %s: %s", signal, url)
            return url
        logger.debug("rejected %s candidate %r", signal, raw[:200])
    return None


__all__ = [
    "normalize_fullwidth",
    "normalize_candidate_url",
    "iter_url_candidates",
    "extract_source_url",
]
