"""On-disk cache for the fetched HTML.

Only one snapshot is kept: every run overwrites the same file.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pageqa.errors import FilesystemError

logger = logging.getLogger(__name__)


def ensure_cache_dir(cache_dir: Path) -> Path:
    """Create *cache_dir* (and parents) if it does not exist.

    Raises:
        FilesystemError: If the directory cannot be created.
    """
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(f"Cannot create cache directory {cache_dir}: {exc}") from exc
    return cache_dir


def write_cache(cache_dir: Path, file_name: str, content: str) -> Path:
    """Write *content* to ``cache_dir / file_name``, truncating any old copy.

    Returns:
        The path of the written file.

    Raises:
        FilesystemError: If the directory or file cannot be written.
    """
    ensure_cache_dir(cache_dir)
    path = cache_dir / file_name
    try:
        # newline="" keeps the body byte-for-byte (no \n -> os.linesep rewrite).
        with path.open("w", encoding="utf-8", newline="") as fh:
            fh.write(content)
    except OSError as exc:
        raise FilesystemError(f"Cannot write cache file {path}: {exc}") from exc

    logger.debug("Cached %d chars at %s", len(content), path)
    return path
