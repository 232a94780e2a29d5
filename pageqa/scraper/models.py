"""Data models for the scraper stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class RawPage:
    """The raw HTTP response for a single URL fetch."""

    url: str
    html: str
    status_code: int


@dataclass(frozen=True)
class Fragment:
    """One block of content extracted from the cached page."""

    text: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def category(self) -> str:
        """Element type reported by the extraction service (e.g. ``Title``)."""
        return str(self.metadata.get("category", ""))
