from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional


def setup_logging(
    *,
    console_level: int = logging.WARNING,
    log_file: Optional[Path] = None,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Configure logging for one CLI invocation:
    - stderr handler at ``console_level`` so stdout stays clean for output
    - optional file handler with full DEBUG detail

    Call this once, before the store is touched.
    """
    root = logging.getLogger()
    root.setLevel(min(console_level, file_level) if log_file else console_level)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    root.addHandler(ch)

    if log_file is not None:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(str(log_file), encoding="utf-8")
        except OSError as exc:
            # console only
            root.setLevel(console_level)
            logging.getLogger(__name__).warning("cannot open log file %s: %s", log_file, exc)
        else:
            fh.setLevel(file_level)
            fh.setFormatter(fmt)
            root.addHandler(fh)

    logging.captureWarnings(True)
