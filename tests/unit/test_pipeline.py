# tests/unit/test_pipeline.py
from __future__ import annotations

from pathlib import Path

import pytest

from snapnorm.core.compact import pipeline
from snapnorm.core.compact.pipeline import apply_strip_filters, compact_file
from snapnorm.core.errors import SnapshotReadError, SnapshotWriteError
from tests.utils import data_uri, image_page, make_snapshot_html, write_snapshot


def test_compact_file_rewrites_in_place(tmp_path: Path, png_bytes, policy_factory):
    path = write_snapshot(tmp_path, "page.html", image_page(data_uri(png_bytes(64, 64))))
    before = path.stat().st_size

    outcome = compact_file(path, policy_factory())

    assert outcome.written
    assert outcome.compaction is not None
    assert outcome.compaction.state == "converged"
    assert outcome.bytes_before == before
    assert path.stat().st_size == outcome.bytes_after < before
    assert "data:image/webp" in path.read_text(encoding="utf-8")
    assert list(tmp_path.glob(".snapnorm_*")) == []


def test_unchanged_document_is_not_rewritten(tmp_path: Path, policy_factory):
    html = make_snapshot_html()
    path = write_snapshot(tmp_path, "plain.html", html)
    mtime = path.stat().st_mtime_ns

    outcome = compact_file(path, policy_factory())

    assert not outcome.written
    assert path.read_text(encoding="utf-8") == html
    assert path.stat().st_mtime_ns == mtime


def test_strip_flags_run_before_recompression(tmp_path: Path, policy_factory):
    html = make_snapshot_html(body="<script>track()</script><p>x</p>")
    path = write_snapshot(tmp_path, "s.html", html)
    outcome = compact_file(path, policy_factory(strip_scripts=True))
    assert outcome.written
    assert [s.name for s in outcome.strips] == ["scripts"]
    assert "<script>" not in path.read_text(encoding="utf-8")


def test_extract_mode_writes_assets_and_skips_budget(tmp_path: Path, png_bytes, policy_factory):
    path = write_snapshot(tmp_path, "doc.html", image_page(data_uri(png_bytes(32, 32))))
    outcome = compact_file(path, policy_factory(extract_images=True))
    assert outcome.compaction is None
    assert outcome.externalized is not None
    [asset] = outcome.externalized.assets
    assert asset.path.exists()
    assert asset.reference in path.read_text(encoding="utf-8")


def test_failed_document_write_removes_new_assets(tmp_path: Path, png_bytes, policy_factory, monkeypatch):
    html = image_page(data_uri(png_bytes(32, 32)), data_uri(png_bytes(24, 24)))
    path = write_snapshot(tmp_path, "doc.html", html)

    def refuse(p, text):
        raise SnapshotWriteError(f"{p}: disk full")

    monkeypatch.setattr(pipeline, "write_text_atomic", refuse)
    with pytest.raises(SnapshotWriteError):
        compact_file(path, policy_factory(extract_images=True))

    asset_dir = tmp_path / "assets" / "snapshots" / "doc"
    assert list(asset_dir.glob("img-*")) == []
    assert path.read_text(encoding="utf-8") == html


def test_invalid_utf8_is_a_read_error_and_file_untouched(tmp_path: Path, policy_factory):
    raw = b"<html>\xff\xfe</html>"
    path = write_snapshot(tmp_path, "bin.html", data=raw)
    with pytest.raises(SnapshotReadError):
        compact_file(path, policy_factory(strip_scripts=True))
    assert path.read_bytes() == raw


def test_missing_file_is_a_read_error(tmp_path: Path, policy_factory):
    with pytest.raises(SnapshotReadError):
        compact_file(tmp_path / "nope.html", policy_factory())


def test_apply_strip_filters_respects_flags(policy_factory):
    text = "<script>x()</script><style>a{}</style>"
    out, results = apply_strip_filters(text, policy_factory())
    assert out == text
    assert results == []

    out, results = apply_strip_filters(text, policy_factory(strip_large_styles=True, style_threshold=0))
    assert out == "<script>x()</script>"
    assert [r.name for r in results] == ["large_styles"]
