# fixture_builder/logging_utils.py
from __future__ import annotations

import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "fixture_builder"


def setup_logging(verbose: bool = False, quiet: bool = False, level: Optional[int] = None) -> None:
    """
    Configure the root logger once for CLI use. Safe to call repeatedly.
    quiet silences every fixture_builder logger, errors included.
    """
    if level is None:
        level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    set_quiet(quiet)


def set_quiet(quiet: bool) -> None:
    # child loggers inherit this level unless they set their own
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.CRITICAL + 1 if quiet else logging.NOTSET)
