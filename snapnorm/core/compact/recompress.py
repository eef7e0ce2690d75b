# snapnorm/core/compact/recompress.py
"""
Recompression engine for inline images.

Policy:
  - SVG: always passed through (vector, re-encoding would change semantics)
  - GIF: re-optimized as GIF (animation kept) unless gif_to_webp is set,
    in which case it becomes an animated WebP
  - every other raster: EXIF-transposed, downscaled so neither side exceeds
    max_width (never upscaled), re-encoded to WebP at `quality`

A resource that fails to decode/encode keeps its original bytes; it never
aborts the document. Within one document identical decoded bytes are
re-encoded once (RecompressionCache).
"""

from __future__ import annotations

import base64
import io
import logging
from collections.abc import Hashable
from dataclasses import dataclass, field
from typing import Any

from PIL import Image, ImageOps, ImageSequence

from ..errors import ResourceRecompressError
from ..storage import _sha256
from .scanner import EmbeddedResource, scan_embedded_images

logger = logging.getLogger(__name__)

try:
    _RESAMPLE_LANCZOS = Image.Resampling.LANCZOS  # Pillow >= 9.1
except AttributeError:  # Pillow < 9.1
    _RESAMPLE_LANCZOS = Image.LANCZOS

TARGET_MIME = "image/webp"
_WEBP_METHOD = 4
_DEFAULT_FRAME_MS = 100


# --- Results & cache ---------------------------------------------------------


@dataclass(frozen=True)
class Recompressed:
    data: bytes
    mime: str

    def to_data_uri(self) -> str:
        return f"data:{self.mime};base64,{base64.b64encode(self.data).decode('ascii')}"


@dataclass
class RecompressionCache:
    """
    Per-document memo of replacement work, keyed by content hash (+ parameters).

    Owned by one document's processing call and dropped afterwards; never
    shared across documents or threads.
    """

    entries: dict[Hashable, Any] = field(default_factory=dict)
    encodes: int = 0
    hits: int = 0

    def get(self, key: Hashable) -> tuple[bool, Any]:
        if key in self.entries:
            self.hits += 1
            return True, self.entries[key]
        return False, None

    def put(self, key: Hashable, value: Any) -> None:
        self.entries[key] = value


@dataclass
class ScanStats:
    resources: int = 0
    replacements: int = 0
    failures: int = 0
    passthrough: int = 0


# --- Format policy -----------------------------------------------------------


def is_vector(mime: str, data: bytes | None = None) -> bool:
    if "svg" in mime.lower():
        return True
    if data is not None:
        head = data[:256].lstrip()
        return head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in data[:1024])
    return False


def _bounded(img: Image.Image, max_width: int) -> Image.Image:
    if img.width > max_width or img.height > max_width:
        img = img.copy()
        img.thumbnail((max_width, max_width), _RESAMPLE_LANCZOS)
    return img


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info)


def _frames(img: Image.Image, max_width: int) -> tuple[list[Image.Image], list[int]]:
    frames: list[Image.Image] = []
    durations: list[int] = []
    for frame in ImageSequence.Iterator(img):
        durations.append(int(frame.info.get("duration", img.info.get("duration", _DEFAULT_FRAME_MS)) or _DEFAULT_FRAME_MS))
        frames.append(_bounded(frame.convert("RGBA"), max_width))
    return frames, durations


def _encode_gif(img: Image.Image, max_width: int) -> bytes:
    buf = io.BytesIO()
    if img.width <= max_width and img.height <= max_width:
        # palette frames re-saved as-is, only the encoder's optimizer runs
        img.save(buf, format="GIF", save_all=True, optimize=True)
        return buf.getvalue()

    frames, durations = _frames(img, max_width)
    frames[0].save(
        buf,
        format="GIF",
        save_all=True,
        append_images=frames[1:],
        duration=durations,
        loop=img.info.get("loop", 0),
        optimize=True,
        disposal=2,
    )
    return buf.getvalue()


def _encode_animated_webp(img: Image.Image, max_width: int, quality: int) -> bytes:
    frames, durations = _frames(img, max_width)
    buf = io.BytesIO()
    frames[0].save(
        buf,
        format="WEBP",
        save_all=True,
        append_images=frames[1:],
        duration=durations,
        loop=img.info.get("loop", 0),
        quality=quality,
        method=_WEBP_METHOD,
    )
    return buf.getvalue()


def _encode_still_webp(img: Image.Image, max_width: int, quality: int) -> bytes:
    img = ImageOps.exif_transpose(img)
    img = img.convert("RGBA" if _has_alpha(img) else "RGB")
    img = _bounded(img, max_width)
    buf = io.BytesIO()
    img.save(buf, format="WEBP", quality=quality, method=_WEBP_METHOD)
    return buf.getvalue()


def recompress_bytes(
    mime: str,
    data: bytes,
    *,
    max_width: int,
    quality: int,
    gif_to_webp: bool = False,
) -> Recompressed | None:
    """
    Re-encode one decoded payload under the (max_width, quality) policy.

    Returns None when the payload must pass through unchanged (vector formats).
    Raises ResourceRecompressError when decoding or encoding fails.
    """
    if is_vector(mime, data):
        return None

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            animated = bool(getattr(img, "is_animated", False))
            # The declared MIME type is not trusted for the GIF decision
            if img.format == "GIF":
                if gif_to_webp:
                    return Recompressed(_encode_animated_webp(img, max_width, quality), TARGET_MIME)
                return Recompressed(_encode_gif(img, max_width), "image/gif")
            if animated:
                return Recompressed(_encode_animated_webp(img, max_width, quality), TARGET_MIME)
            return Recompressed(_encode_still_webp(img, max_width, quality), TARGET_MIME)
    except Exception as e:  # noqa: BLE001
        raise ResourceRecompressError(f"{mime}: {type(e).__name__}: {e}") from e


# --- Whole-document pass -----------------------------------------------------


def _replacement_for(
    res: EmbeddedResource,
    *,
    max_width: int,
    quality: int,
    gif_to_webp: bool,
    cache: RecompressionCache,
    stats: ScanStats,
) -> str | None:
    try:
        raw = res.decode()
    except (ValueError, TypeError) as e:
        stats.failures += 1
        logger.debug("undecodable %s payload at %d: %s", res.mime, res.start, e)
        return None

    if is_vector(res.mime, raw):
        stats.passthrough += 1
        return None

    key = (_sha256(raw), max_width, quality, gif_to_webp)
    found, uri = cache.get(key)
    if not found:
        cache.encodes += 1
        try:
            rec = recompress_bytes(res.mime, raw, max_width=max_width, quality=quality, gif_to_webp=gif_to_webp)
            uri = rec.to_data_uri() if rec is not None else None
        except ResourceRecompressError as e:
            stats.failures += 1
            logger.warning("keeping original %s payload at offset %d: %s", res.mime, res.start, e)
            uri = None
        cache.put(key, uri)

    # only ever substitute something smaller than what is there
    if uri is None or len(uri) >= res.end - res.start:
        return None
    return uri


def recompress_document(
    text: str,
    *,
    max_width: int,
    quality: int,
    gif_to_webp: bool = False,
    cache: RecompressionCache | None = None,
) -> tuple[str, ScanStats]:
    """
    One scan-and-replace pass over `text`.

    All offsets come from a single scan of `text`; the result is assembled
    from slices of it, so the input string is never edited in place.
    """
    cache = cache if cache is not None else RecompressionCache()
    stats = ScanStats()
    parts: list[str] = []
    last = 0

    for res in scan_embedded_images(text):
        stats.resources += 1
        uri = _replacement_for(
            res, max_width=max_width, quality=quality, gif_to_webp=gif_to_webp, cache=cache, stats=stats
        )
        if uri is None:
            continue
        parts.append(text[last : res.start])
        parts.append(uri)
        last = res.end
        stats.replacements += 1

    if not parts:
        return text, stats
    parts.append(text[last:])
    return "".join(parts), stats


__all__ = [
    "TARGET_MIME",
    "Recompressed",
    "RecompressionCache",
    "ScanStats",
    "is_vector",
    "recompress_bytes",
    "recompress_document",
]
