# tests/conftest.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import pytest

from snapnorm.schemas.models import CompactionPolicy
from tests.utils import (
    gif_bytes as _make_gif,
    make_snapshot_html,
    png_bytes as _make_png,
    write_snapshot,
)


# -------- Environment isolation --------
@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    monkeypatch.delenv("SNAPNORM_DEBUG", raising=False)
    monkeypatch.delenv("SNAPNORM_LOG_FILE", raising=False)
    yield
    logger = logging.getLogger("snapnorm")
    for h in list(logger.handlers):
        if getattr(h, "_snapnorm", False):
            logger.removeHandler(h)
            h.close()


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 9, 7, 14, 50, 55, 735000, tzinfo=timezone.utc)


# -------- Snapshot fixtures --------
@pytest.fixture
def snapshot_factory(tmp_path: Path):
    """
    Callable factory to create snapshot files in a test's tmp path.

    Usage:
        p = snapshot_factory("page.html", canonical="https://x/y")
        p = snapshot_factory("page.html", html="<html>...</html>", base_dir=tmp_path / "sub")
    """

    def _factory(name: str, *, html: str | None = None, base_dir: Path | None = None, **signals) -> Path:
        content = html if html is not None else make_snapshot_html(**signals)
        return write_snapshot(base_dir or tmp_path, name, content)

    return _factory


@pytest.fixture
def policy_factory(tmp_path: Path):
    """Factory for CompactionPolicy with assets rooted under tmp_path (overridable)."""

    def _factory(**overrides) -> CompactionPolicy:
        overrides.setdefault("asset_root", tmp_path / "assets" / "snapshots")
        return CompactionPolicy(**overrides)

    return _factory


@pytest.fixture
def png_bytes():
    """
    Fixture that returns a callable to generate PNG bytes with low compression.
    Usage:
        data = png_bytes(64, 64)
    """
    return _make_png


@pytest.fixture
def gif_bytes():
    return _make_gif


# -------- Pytest markers --------
def pytest_configure(config):
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks integration tests")
