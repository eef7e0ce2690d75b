# canonicalize_cli.py

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from snapnorm.core.naming import canonicalize_tree
from snapnorm.logs import configure_logging
from snapnorm.schemas.models import CanonicalizeFlags


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="snapnorm-canonicalize",
        description="Rename saved page snapshots after the URL they were captured from",
    )
    p.add_argument("directory", nargs="?", default=None, help="Directory of snapshots (searched recursively)")
    p.add_argument("--apply", action="store_true", help="Perform renames (default: dry-run report only)")
    p.add_argument("--quiet", action="store_true", help="Suppress per-file report lines")
    p.add_argument(
        "--no-canonical",
        action="store_true",
        help="Prefer og:url/twitter:url over <link rel=canonical>",
    )
    p.add_argument("--verbose", action="store_true", help="Log progress to stderr")
    p.add_argument("--log-file", type=str, default=None, help="Also log to a rotating file")
    return p


def main(argv: list[str] | None = None) -> int:
    p = _build_parser()
    args = p.parse_args(argv)

    if not args.directory:
        p.print_usage(sys.stderr)
        print("error: missing <directory>", file=sys.stderr)
        return 1
    root = Path(args.directory)
    if not root.is_dir():
        print(f"error: not a directory: {root}", file=sys.stderr)
        return 1

    configure_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    flags = CanonicalizeFlags(apply=args.apply, quiet=args.quiet, prefer_canonical=not args.no_canonical)
    outcomes = canonicalize_tree(root, flags, report=print)

    if not args.quiet:
        changed = sum(1 for o in outcomes if o.status in ("renamed", "dry_run"))
        errors = sum(1 for o in outcomes if o.status == "error")
        verb = "renamed" if args.apply else "would rename"
        print(f"{len(outcomes)} snapshot(s): {changed} {verb}, {errors} error(s)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
