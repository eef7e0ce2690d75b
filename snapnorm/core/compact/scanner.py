# snapnorm/core/compact/scanner.py
"""
Tolerant forward scanner for inline base64 payloads (data URIs).

No DOM and no pattern spanning the whole payload: each hit is an explicit
walk over offsets

    marker ("data:image")  →  ';'  →  "base64"  →  ','  →  base64 run

so the same code finds payloads in <img src>, CSS url(), srcset, inline JS
strings or anywhere else. Malformed hits are skipped and their bytes are
never touched. A delimiter missing before the end of the document ends the
scan; the rest of the document passes through as-is.
"""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Iterator
from dataclasses import dataclass

IMAGE_MARKER = "data:image"

_MIME_RE = re.compile(r"[a-z]+/[a-z0-9][a-z0-9.+-]*", re.IGNORECASE)
_MAX_MIME_LEN = 80
# Room for ";charset=utf-8;name=logo.png;" style parameters between the MIME and base64
_MAX_PARAMS_LEN = 256
_PARAM_CHARS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-._+=;%")
_BASE64_RE = re.compile("base64", re.IGNORECASE)
# Base64 alphabet plus the line breaks capture tools wrap payloads with.
# A space ends the payload (srcset "1x" descriptors follow one).
_PAYLOAD_RE = re.compile(r"[A-Za-z0-9+/=\r\n]*")
_WHITESPACE = " \t\r\n\f"

_marker_res: dict[str, re.Pattern[str]] = {}


def _marker_re(marker: str) -> re.Pattern[str]:
    pat = _marker_res.get(marker)
    if pat is None:
        pat = _marker_res[marker] = re.compile(re.escape(marker), re.IGNORECASE)
    return pat


@dataclass(frozen=True)
class EmbeddedResource:
    """
    One inline base64 payload.

    Offsets index the scanned string: text[start:end] is the whole
    "data:<mime>;...;base64,<payload>" and text[payload_start:end] the payload.
    """

    start: int
    payload_start: int
    end: int
    mime: str
    encoded: str

    @property
    def span(self) -> tuple[int, int]:
        return self.start, self.end

    def decode(self) -> bytes:
        """
        Decoded bytes. Raises binascii.Error on a corrupt/truncated payload.
        """
        compact = "".join(self.encoded.split())
        if len(compact) % 4 == 1:
            raise binascii.Error("truncated base64 payload")
        compact += "=" * (-len(compact) % 4)
        return base64.b64decode(compact, validate=True)


def scan_data_uris(text: str, *, marker: str = IMAGE_MARKER, start: int = 0) -> Iterator[EmbeddedResource]:
    """
    Yield every base64 data URI whose MIME starts with `marker` ("data:image",
    "data:font", ...), in document order. Never raises on malformed input.
    """
    find_marker = _marker_re(marker)
    type_prefix = marker[len("data:") :].lower()
    n = len(text)
    pos = start

    while pos < n:
        m = find_marker.search(text, pos)
        if not m:
            return
        hit = m.start()
        mime_start = hit + len("data:")

        # Searches are windowed so a stray marker costs O(window), not O(document)
        semi_limit = mime_start + _MAX_MIME_LEN + 1
        semi = text.find(";", m.end(), semi_limit)
        if semi == -1:
            if semi_limit >= n:
                return
            pos = m.end()
            continue
        mime = text[mime_start:semi]
        if not _MIME_RE.fullmatch(mime) or not mime.lower().startswith(type_prefix):
            pos = m.end()
            continue

        b_limit = semi + 1 + _MAX_PARAMS_LEN + len("base64")
        b = _BASE64_RE.search(text, semi + 1, b_limit)
        if b is None:
            if b_limit >= n:
                return
            pos = m.end()
            continue
        params = text[semi + 1 : b.start()]
        if any(ch not in _PARAM_CHARS for ch in params):
            # not a base64 URI (e.g. "data:image/svg+xml;charset=utf-8,<svg ...")
            pos = m.end()
            continue

        comma = b.end()
        if comma >= n:
            return
        if text[comma] != ",":
            pos = m.end()
            continue

        payload_start = comma + 1
        end = _PAYLOAD_RE.match(text, payload_start).end()  # type: ignore[union-attr]
        while end > payload_start and text[end - 1] in _WHITESPACE:
            end -= 1
        if end == payload_start:
            pos = payload_start
            continue

        yield EmbeddedResource(
            start=hit,
            payload_start=payload_start,
            end=end,
            mime=mime.lower(),
            encoded=text[payload_start:end],
        )
        pos = end


def scan_embedded_images(text: str) -> Iterator[EmbeddedResource]:
    """Every inline base64 image in `text`, in document order."""
    return scan_data_uris(text, marker=IMAGE_MARKER)


__all__ = [
    "IMAGE_MARKER",
    "EmbeddedResource",
    "scan_data_uris",
    "scan_embedded_images",
]
