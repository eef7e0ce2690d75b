# tests/integration/test_compact_cli.py
from __future__ import annotations

import re
from pathlib import Path

import pytest

import compact_cli
from tests.utils import data_uri, image_page, make_snapshot_html, write_snapshot

pytestmark = pytest.mark.integration

_PROCESSED_RE = re.compile(r"^Processed (.+): (\d+(?:\.\d+)? (?:B|KiB|MiB)) -> (\S+ (?:B|KiB|MiB)) \(([-+]\S+ (?:B|KiB|MiB))\)$")


@pytest.mark.parametrize("argv", [[], ["a.html", "b.html"]])
def test_wrong_file_count_exits_2(argv, capsys):
    assert compact_cli.main(argv) == 2
    assert "exactly one" in capsys.readouterr().err


def test_invalid_option_value_exits_2(tmp_path: Path, capsys):
    path = write_snapshot(tmp_path, "a.html")
    original = path.read_text(encoding="utf-8")
    assert compact_cli.main([str(path), "--quality", "0"]) == 2
    assert "invalid options" in capsys.readouterr().err
    assert path.read_text(encoding="utf-8") == original


def test_processed_line_and_in_place_rewrite(tmp_path: Path, png_bytes, capsys):
    path = write_snapshot(tmp_path, "page.html", image_page(data_uri(png_bytes(96, 96))))
    before = path.stat().st_size
    assert compact_cli.main([str(path)]) == 0
    line = capsys.readouterr().out.strip().splitlines()[0]
    m = _PROCESSED_RE.match(line)
    assert m, line
    assert m.group(1) == str(path)
    assert m.group(4).startswith("-")
    assert path.stat().st_size < before


def test_strip_flags_and_verbose_summary(tmp_path: Path, capsys):
    html = make_snapshot_html(
        body=(
            "<script>track()</script>"
            '<iframe name="__privateStripeController0" src="https://js.stripe.com/v3/x.html"></iframe>'
            "<p>kept</p>"
        ),
        head_extra="<style>@font-face{font-family:A;src:url(a.woff)}</style>",
    )
    path = write_snapshot(tmp_path, "s.html", html)
    argv = [str(path), "--strip-scripts", "--strip-stripe", "--strip-fonts", "--verbose"]
    assert compact_cli.main(argv) == 0
    out = capsys.readouterr().out
    assert "strip scripts: 1 removed" in out
    assert "strip tracking_iframes: 1 removed" in out
    assert "strip fonts: 1 removed" in out
    text = path.read_text(encoding="utf-8")
    assert "<script>" not in text
    assert "<iframe" not in text
    assert "@font-face" not in text
    assert "<p>kept</p>" in text


def test_extract_images_to_asset_root(tmp_path: Path, png_bytes, capsys):
    path = write_snapshot(tmp_path, "doc.zip.html", image_page(data_uri(png_bytes(32, 32))))
    root = tmp_path / "assets"
    assert compact_cli.main([str(path), "--extract-images", "--asset-root", str(root)]) == 0
    files = list((root / "doc").iterdir())
    assert len(files) == 1
    assert files[0].name.startswith("img-0000-")
    assert "data:image" not in path.read_text(encoding="utf-8")


def test_target_bytes_and_max_passes(tmp_path: Path, png_bytes, capsys):
    path = write_snapshot(tmp_path, "t.html", image_page(data_uri(png_bytes(64, 64))))
    argv = [str(path), "--targetBytes", "1", "--maxPasses", "2", "--verbose"]
    assert compact_cli.main(argv) == 0
    out = capsys.readouterr().out
    assert re.search(r"(stalled|exhausted_parameters) after [12] pass\(es\)", out)


def test_unreadable_file_exits_1(tmp_path: Path, capsys):
    path = write_snapshot(tmp_path, "bin.html", data=b"\xff\xfe\x00")
    assert compact_cli.main([str(path)]) == 1
    assert "ERR  " in capsys.readouterr().err


@pytest.mark.parametrize(
    "n, expected",
    [(512, "512 B"), (2048, "2.00 KiB"), (3 * 1024 * 1024, "3.00 MiB")],
)
def test_fmt_bytes(n, expected):
    assert compact_cli.fmt_bytes(n) == expected


def test_fmt_delta_sign():
    assert compact_cli.fmt_delta(4096, 1024) == "-3.00 KiB"
    assert compact_cli.fmt_delta(1024, 2048) == "+1.00 KiB"
