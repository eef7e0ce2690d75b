# snapnorm/logs.py
"""Logging setup shared by the command-line tools."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_DATEFMT = "(%Y-%m-%d %H:%M:%S)"


def debug_enabled() -> bool:
    return os.getenv("SNAPNORM_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}


def configure_logging(*, verbose: bool = False, quiet: bool = False, log_file: str | None = None) -> logging.Logger:
    """
    Configure the `snapnorm` logger tree for CLI use.

    - stderr handler at WARNING (INFO with verbose, DEBUG with SNAPNORM_DEBUG=1,
      ERROR with quiet)
    - optional rotating file log (SNAPNORM_LOG_FILE or `log_file`)
    """
    logger = logging.getLogger("snapnorm")

    if debug_enabled():
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logger.setLevel(level)

    # Avoid duplicate handlers if main() runs more than once (tests, REPL)
    for h in list(logger.handlers):
        if getattr(h, "_snapnorm", False):
            logger.removeHandler(h)
            h.close()

    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    stream._snapnorm = True  # type: ignore[attr-defined]
    logger.addHandler(stream)

    log_path = log_file or os.getenv("SNAPNORM_LOG_FILE")
    if log_path:
        try:
            os.makedirs(os.path.dirname(log_path) or ".", exist_ok=True)
            handler = RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
            handler.setFormatter(formatter)
            handler._snapnorm = True  # type: ignore[attr-defined]
            logger.addHandler(handler)
        except OSError as e:
            # keep going with stderr only
            logger.warning("could not open log file %s: %s", log_path, e)

    return logger


__all__ = ["configure_logging", "debug_enabled"]
