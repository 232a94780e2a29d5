"""Utilities for rendering fragments in the CLI."""

from __future__ import annotations

from typing import List

from pageqa.scraper.models import Fragment

_PREVIEW_CHARS = 80


def _preview(text: str, width: int = _PREVIEW_CHARS) -> str:
    """Collapse whitespace and cut *text* to *width* characters."""
    flat = " ".join(text.split())
    if len(flat) <= width:
        return flat
    return flat[: width - 1] + "…"


def render_sources(fragments: List[Fragment]) -> str:
    """Render the answer's sources as a numbered list.

    Example::

        Sources:
        [1] (Title) Show HN: A tiny vector database
        [2] (NarrativeText) 312 points by someone 4 hours ago
    """
    lines = ["Sources:"]
    for i, fragment in enumerate(fragments, start=1):
        category = fragment.category or "Fragment"
        lines.append(f"[{i}] ({category}) {_preview(fragment.text)}")
    return "\n".join(lines)


def render_fragments(fragments: List[Fragment]) -> str:
    """Render every extracted fragment, one per line, with its category."""
    if not fragments:
        return "No fragments extracted."
    width = len(str(len(fragments)))
    return "\n".join(
        f"{i:>{width}}  [{f.category or '?'}]  {_preview(f.text)}"
        for i, f in enumerate(fragments, start=1)
    )
