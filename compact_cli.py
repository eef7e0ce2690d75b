# compact_cli.py

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pydantic import ValidationError

from snapnorm.core.compact import compact_file
from snapnorm.core.errors import ConfigurationError, SnapshotError
from snapnorm.logs import configure_logging
from snapnorm.schemas.models import CompactionPolicy, CompactOutcome

KIB = 1024
MIB = 1024 * 1024


def fmt_bytes(n: int) -> str:
    if n >= MIB:
        return f"{n / MIB:.2f} MiB"
    if n >= KIB:
        return f"{n / KIB:.2f} KiB"
    return f"{n} B"


def fmt_delta(before: int, after: int) -> str:
    delta = after - before
    sign = "-" if delta <= 0 else "+"
    return f"{sign}{fmt_bytes(abs(delta))}"


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="snapnorm-compact",
        description="Shrink inline images (and optionally fonts/scripts/styles) in one saved snapshot",
    )
    p.add_argument("files", nargs="*", help="Exactly one snapshot file")
    p.add_argument("--maxWidth", dest="max_width", type=int, default=1600, help="Max pixel size of either side")
    p.add_argument("--quality", type=int, default=70, help="WebP quality for the first pass")
    p.add_argument(
        "--targetBytes",
        dest="target_bytes",
        type=int,
        default=None,
        help="Byte budget for the document (default: current size, i.e. one pass)",
    )
    p.add_argument("--maxPasses", dest="max_passes", type=int, default=None, help="Stop after N passes")
    p.add_argument("--gif-webp", dest="gif_webp", action="store_true", help="Convert GIFs to animated WebP")
    p.add_argument("--strip-fonts", action="store_true", help="Remove @font-face rules and embedded fonts")
    p.add_argument("--strip-scripts", action="store_true", help="Remove <script> blocks")
    p.add_argument("--strip-stripe", action="store_true", help="Remove Stripe and other tracking iframes")
    p.add_argument("--strip-large-styles", action="store_true", help="Remove <style> blocks above --styleThreshold")
    p.add_argument("--styleThreshold", dest="style_threshold", type=int, default=256 * 1024)
    p.add_argument("--extract-images", action="store_true", help="Write images to files under --asset-root")
    p.add_argument("--asset-root", type=str, default="assets/snapshots")
    p.add_argument("--verbose", action="store_true", help="Log progress to stderr")
    p.add_argument("--log-file", type=str, default=None, help="Also log to a rotating file")
    return p


def _policy_from_args(args: argparse.Namespace) -> CompactionPolicy:
    try:
        return CompactionPolicy(
            max_width=args.max_width,
            quality=args.quality,
            target_bytes=args.target_bytes,
            max_passes=args.max_passes,
            gif_to_webp=args.gif_webp,
            strip_fonts=args.strip_fonts,
            strip_scripts=args.strip_scripts,
            strip_tracking_iframes=args.strip_stripe,
            strip_large_styles=args.strip_large_styles,
            style_threshold=args.style_threshold,
            extract_images=args.extract_images,
            asset_root=Path(args.asset_root),
        )
    except ValidationError as e:
        raise ConfigurationError(f"invalid options: {e.error_count()} error(s)\n{e}") from e


def _summary(outcome: CompactOutcome) -> str:
    return (
        f"Processed {outcome.path}: {fmt_bytes(outcome.bytes_before)} -> "
        f"{fmt_bytes(outcome.bytes_after)} ({fmt_delta(outcome.bytes_before, outcome.bytes_after)})"
    )


def main(argv: list[str] | None = None) -> int:
    p = _build_parser()
    args = p.parse_args(argv)

    if len(args.files) != 1:
        p.print_usage(sys.stderr)
        print("error: expected exactly one snapshot file", file=sys.stderr)
        return 2

    try:
        policy = _policy_from_args(args)
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    configure_logging(verbose=args.verbose, log_file=args.log_file)

    path = Path(args.files[0])
    try:
        outcome = compact_file(path, policy)
    except SnapshotError as e:
        print(f"ERR  {path}: {e}", file=sys.stderr)
        return 1

    print(_summary(outcome))
    if args.verbose:
        for s in outcome.strips:
            print(f"  strip {s.name}: {s.removed} removed ({fmt_bytes(s.bytes_removed)})")
        if outcome.compaction is not None:
            c = outcome.compaction
            print(f"  {c.state} after {len(c.passes)} pass(es), target {fmt_bytes(c.target_bytes)}, "
                  f"encodes={c.encodes} cache_hits={c.cache_hits}")
        if outcome.externalized is not None:
            x = outcome.externalized
            print(f"  {len(x.assets)} asset(s) in {x.asset_dir}, {x.references} reference(s), {x.failures} failure(s)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
