# tests/utils.py
"""
Single source of truth for test data, factories, and canonical payloads.
Update values here to cascade across the test suite.
"""

from __future__ import annotations

import base64
import io
from pathlib import Path

from PIL import Image

# -----------------------------
# Canonical names & URLs
# -----------------------------

DEFAULT_URL = "https://example.com/listing/123"
DEFAULT_DT_SUFFIX = "2025-09-07T14_50_55_735Z"
DEFAULT_CANONICAL_NAME = f"https__example.com_listing_123-{DEFAULT_DT_SUFFIX}.html"


# -----------------------------
# Image payloads
# -----------------------------


def png_bytes(w: int = 64, h: int = 64, *, alpha: bool = False) -> bytes:
    """Gradient PNG saved with no zlib compression, so any re-encode is smaller."""
    mode = "RGBA" if alpha else "RGB"
    img = Image.new(mode, (w, h))
    px = img.load()
    for y in range(h):
        for x in range(w):
            rgb = ((x * 255) // max(1, w - 1), (y * 255) // max(1, h - 1), ((x + y) * 127) // max(1, w + h - 2))
            px[x, y] = (*rgb, 200) if alpha else rgb
    buf = io.BytesIO()
    img.save(buf, format="PNG", compress_level=0)
    return buf.getvalue()


def gif_bytes(w: int = 32, h: int = 32, *, frames: int = 2) -> bytes:
    """Small animated GIF (solid-colour frames)."""
    colors = [(255, 0, 0), (0, 0, 255), (0, 255, 0), (255, 255, 0)]
    imgs = [Image.new("RGB", (w, h), colors[i % len(colors)]).convert("P") for i in range(frames)]
    buf = io.BytesIO()
    imgs[0].save(buf, format="GIF", save_all=True, append_images=imgs[1:], duration=80, loop=0)
    return buf.getvalue()


def svg_text(w: int = 10, h: int = 10) -> str:
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{w}" height="{h}">'
        f'<rect width="{w}" height="{h}" fill="red"/></svg>'
    )


def data_uri(data: bytes | str, mime: str = "image/png") -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def wrapped_data_uri(data: bytes, mime: str = "image/png", width: int = 76) -> str:
    """Same payload as data_uri(), with CRLF line breaks every `width` characters (MIME style)."""
    b64 = base64.b64encode(data).decode("ascii")
    lines = "\r\n".join(b64[i : i + width] for i in range(0, len(b64), width))
    return f"data:{mime};base64,{lines}"


# -----------------------------
# Snapshot documents
# -----------------------------


def make_snapshot_html(
    *,
    canonical: str | None = None,
    og_url: str | None = None,
    twitter_url: str | None = None,
    saved_from: str | None = None,
    body: str = "<p>hello</p>",
    head_extra: str = "",
) -> str:
    """
    Build a small captured-page document carrying the requested URL signals.
    Any signal left as None is omitted.
    """
    preamble = f"<!-- saved from url=(0042){saved_from} -->\n" if saved_from else ""
    head: list[str] = ['<meta charset="utf-8">', "<title>Snapshot</title>"]
    if canonical is not None:
        head.append(f'<link rel="canonical" href="{canonical}">')
    if og_url is not None:
        head.append(f'<meta property="og:url" content="{og_url}">')
    if twitter_url is not None:
        head.append(f'<meta name="twitter:url" content="{twitter_url}">')
    if head_extra:
        head.append(head_extra)
    return (
        f"{preamble}<!doctype html>\n<html>\n<head>\n  "
        + "\n  ".join(head)
        + f"\n</head>\n<body>\n{body}\n</body>\n</html>\n"
    )


def write_snapshot(tmp_dir: Path, name: str, html: str | None = None, *, data: bytes | None = None) -> Path:
    """Write a snapshot file (text or raw bytes) into tmp_dir and return its Path."""
    tmp_dir.mkdir(parents=True, exist_ok=True)
    path = tmp_dir / name
    if data is not None:
        path.write_bytes(data)
    else:
        path.write_text(html if html is not None else make_snapshot_html(), encoding="utf-8")
    return path


def image_page(*uris: str) -> str:
    """A document embedding each data URI in its own <img>."""
    imgs = "\n".join(f'<img src="{u}" alt="i{i}">' for i, u in enumerate(uris))
    return make_snapshot_html(body=imgs)
