# tests/integration/test_canonicalize_cli.py
from __future__ import annotations

from pathlib import Path

import pytest

import canonicalize_cli
from tests.utils import DEFAULT_DT_SUFFIX, DEFAULT_URL

pytestmark = pytest.mark.integration

STAMPED = f"capture-{DEFAULT_DT_SUFFIX}.html"
EXPECTED = f"https__example.com_listing_123-{DEFAULT_DT_SUFFIX}.html"


def test_missing_directory_argument_exits_1(capsys):
    assert canonicalize_cli.main([]) == 1
    assert "missing <directory>" in capsys.readouterr().err


def test_non_directory_exits_1(tmp_path: Path, capsys):
    f = tmp_path / "file.html"
    f.write_text("x", encoding="utf-8")
    assert canonicalize_cli.main([str(f)]) == 1
    assert canonicalize_cli.main([str(tmp_path / "nope")]) == 1


def test_dry_run_reports_without_renaming(tmp_path: Path, snapshot_factory, capsys):
    snapshot_factory(STAMPED, canonical=DEFAULT_URL)
    assert canonicalize_cli.main([str(tmp_path)]) == 0
    out = capsys.readouterr().out
    assert f"DRYRUN  {STAMPED}  ->  {EXPECTED}" in out
    assert "1 would rename" in out
    assert (tmp_path / STAMPED).exists()


def test_apply_renames_and_second_run_is_quiet(tmp_path: Path, snapshot_factory, capsys):
    snapshot_factory(STAMPED, canonical=DEFAULT_URL)
    assert canonicalize_cli.main([str(tmp_path), "--apply"]) == 0
    assert f"RENAME  {STAMPED}  ->  {EXPECTED}" in capsys.readouterr().out
    assert (tmp_path / EXPECTED).exists()

    assert canonicalize_cli.main([str(tmp_path), "--apply"]) == 0
    out = capsys.readouterr().out
    assert "RENAME" not in out
    assert "0 renamed" in out


def test_quiet_prints_nothing(tmp_path: Path, snapshot_factory, capsys):
    snapshot_factory(STAMPED, canonical=DEFAULT_URL)
    assert canonicalize_cli.main([str(tmp_path), "--apply", "--quiet"]) == 0
    assert capsys.readouterr().out == ""
    assert (tmp_path / EXPECTED).exists()


def test_no_canonical_switches_priority(tmp_path: Path, snapshot_factory, capsys):
    snapshot_factory(STAMPED, canonical="https://example.com/c", og_url="https://example.com/og")
    assert canonicalize_cli.main([str(tmp_path), "--no-canonical", "--apply", "--quiet"]) == 0
    assert (tmp_path / f"https__example.com_og-{DEFAULT_DT_SUFFIX}.html").exists()
