# snapnorm/core/compact/externalize.py
"""
Asset externalizer: move inline images out of the document into files.

Layout:
  <asset_root>/<document slug>/img-0000-<hash12>.webp

Each distinct payload (by sha256 of its decoded bytes) is written once;
every later occurrence is rewritten to the same relative reference.
"""

from __future__ import annotations

import logging
import mimetypes
import os
from pathlib import Path
from urllib.parse import quote

from snapnorm.schemas.models import CompactionPolicy, ExternalizedAsset, ExternalizeReport

from ..errors import ResourceRecompressError, SnapshotWriteError
from ..storage import _sha256, asset_dir_for, utf8_size, write_bytes_atomic
from .recompress import RecompressionCache, Recompressed, is_vector, recompress_bytes
from .scanner import EmbeddedResource, scan_embedded_images
from .strip import strip_data_srcset

logger = logging.getLogger(__name__)

_EXT_BY_MIME = {
    "image/webp": ".webp",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/pjpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/svg+xml": ".svg",
    "image/avif": ".avif",
    "image/bmp": ".bmp",
    "image/x-icon": ".ico",
    "image/vnd.microsoft.icon": ".ico",
    "image/tiff": ".tif",
}


def ext_for_mime(mime: str) -> str:
    ext = _EXT_BY_MIME.get(mime.lower())
    if ext:
        return ext
    return mimetypes.guess_extension(mime) or ".bin"


def _asset_reference(path: Path, document: Path) -> str:
    rel = os.path.relpath(path, document.parent)
    return quote(Path(rel).as_posix())


def _payload_for_file(raw: bytes, res: EmbeddedResource, policy: CompactionPolicy) -> Recompressed:
    """Bytes to write for one payload: recompressed raster, or the original bytes."""
    if is_vector(res.mime, raw):
        return Recompressed(raw, res.mime)
    if (res.mime == "image/gif" or raw[:6] in (b"GIF87a", b"GIF89a")) and not policy.gif_to_webp:
        return Recompressed(raw, "image/gif")
    try:
        rec = recompress_bytes(
            res.mime, raw, max_width=policy.max_width, quality=policy.quality, gif_to_webp=policy.gif_to_webp
        )
    except ResourceRecompressError as e:
        logger.warning("writing original %s bytes unchanged: %s", res.mime, e)
        return Recompressed(raw, res.mime)
    if rec is None or len(rec.data) >= len(raw):
        return Recompressed(raw, res.mime)
    return rec


def externalize_images(
    text: str,
    document: Path,
    policy: CompactionPolicy,
    *,
    cache: RecompressionCache | None = None,
) -> tuple[str, ExternalizeReport]:
    """
    Rewrite every inline image in `text` to a file reference under the
    document's asset directory. Returns the new text and a report; the
    document itself is not written here.
    """
    cache = cache if cache is not None else RecompressionCache()
    bytes_before = utf8_size(text)
    text, srcset = strip_data_srcset(text)
    if srcset.removed:
        logger.info("dropped %d inline srcset attribute(s)", srcset.removed)

    asset_dir = asset_dir_for(document, policy.asset_root)
    assets: list[ExternalizedAsset] = []
    references = 0
    failures = 0
    parts: list[str] = []
    last = 0

    for res in scan_embedded_images(text):
        try:
            raw = res.decode()
        except (ValueError, TypeError) as e:
            failures += 1
            logger.debug("undecodable %s payload at %d: %s", res.mime, res.start, e)
            continue

        digest = _sha256(raw)
        found, reference = cache.get(digest)
        if not found:
            cache.encodes += 1
            out = _payload_for_file(raw, res, policy)
            path = asset_dir / f"img-{len(assets):04d}-{digest[:12]}{ext_for_mime(out.mime)}"
            try:
                write_bytes_atomic(path, out.data)
            except SnapshotWriteError as e:
                failures += 1
                logger.warning("leaving payload inline, asset write failed: %s", e)
                continue
            reference = _asset_reference(path, document)
            assets.append(
                ExternalizedAsset(path=path, reference=reference, sha256=digest, mime=out.mime, bytes_size=len(out.data))
            )
            cache.put(digest, reference)

        parts.append(text[last : res.start])
        parts.append(reference)
        last = res.end
        references += 1

    if parts:
        parts.append(text[last:])
        text = "".join(parts)

    report = ExternalizeReport(
        asset_dir=asset_dir,
        assets=assets,
        references=references,
        failures=failures,
        bytes_before=bytes_before,
        bytes_after=utf8_size(text),
    )
    logger.info("externalized %d reference(s) to %d file(s) under %s", references, len(assets), asset_dir)
    return text, report


__all__ = ["ext_for_mime", "externalize_images"]
