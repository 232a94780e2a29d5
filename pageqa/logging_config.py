"""Standard-library logging setup for diagnostic output."""

from __future__ import annotations

import logging


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs every request at INFO; keep it out of the step output.
    if level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
