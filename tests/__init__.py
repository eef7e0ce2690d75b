# tests/__init__.py
"""
Expose common test utilities so tests can import directly:
    from tests import make_snapshot_html, data_uri
"""

from .utils import data_uri, make_snapshot_html, write_snapshot

__all__ = ["make_snapshot_html", "data_uri", "write_snapshot"]
