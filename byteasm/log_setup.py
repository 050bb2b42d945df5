"""
Logging setup for the byterun CLI.

Library modules only ever call logging.getLogger(__name__) and log at
DEBUG; nothing is printed unless a front end installs handlers here.

    console  rich handler on stderr, WARNING by default
             -v -> INFO, -vv -> DEBUG (per-instruction trace), -q -> ERROR
    file     optional, always DEBUG, timestamped plain text
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "byteasm"


def console_level(verbose: int = 0, quiet: bool = False) -> int:
    if quiet:
        return logging.ERROR
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


def setup_logging(
    verbose: int = 0,
    quiet: bool = False,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Configure and return the package logger.

    Safe to call more than once: previously installed handlers are
    replaced, not stacked.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # ── Console handler ──
    level = console_level(verbose, quiet)
    ch = RichHandler(
        level=level,
        console=Console(stderr=True),
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose >= 2,
    )
    ch.setLevel(level)
    logger.addHandler(ch)

    # ── File handler: everything ──
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_path), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-7s | %(name)-18s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(fh)
        logger.debug("Log file: %s", log_path)

    return logger
