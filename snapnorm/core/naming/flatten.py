# snapnorm/core/naming/flatten.py

from __future__ import annotations

from urllib.parse import urlsplit

DELIM = "_"


def flatten_url(url: str) -> str:
    """
    Deterministically map a URL to a filesystem-safe base name.

        https://Example.com:8443/a/b/  ->  https__example.com_a_b__
        https://example.com/a/b        ->  https__example.com_a_b
        https://example.com/           ->  https__example.com

    The port is dropped; a trailing slash on a non-root path adds one extra
    delimiter so `/x/` and `/x` never flatten to the same string.
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()

    path = parts.path or "/"
    ended_with_slash = path.endswith("/") and path != "/"
    flat = path[1:] if path.startswith("/") else path
    flat = flat.replace("/", DELIM)
    if ended_with_slash:
        flat += DELIM

    base = f"{scheme}{DELIM * 2}{host}"
    return f"{base}{DELIM}{flat}" if flat else base


__all__ = ["DELIM", "flatten_url"]
