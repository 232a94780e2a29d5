"""Content extraction through the hosted Unstructured partition API.

The cached HTML file is posted as multipart form data; the service answers
with a JSON array of *elements*::

    [{"type": "Title", "element_id": "...", "text": "...", "metadata": {...}}, ...]

Each element with non-blank text becomes one :class:`Fragment`.  The element
type is kept as ``metadata["category"]`` alongside the service's own
metadata (``filename``, ``languages``, ``link_urls`` ...).

There is no local parsing fallback.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import httpx

from pageqa.config import settings
from pageqa.errors import ExtractionError
from pageqa.scraper.models import Fragment

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _element_to_fragment(element: Any) -> Fragment | None:
    """Convert one API element into a :class:`Fragment` (``None`` if blank)."""
    if not isinstance(element, dict):
        raise ExtractionError(f"Malformed element in extraction response: {element!r}")

    text = element.get("text")
    if not isinstance(text, str) or not text.strip():
        return None

    metadata = element.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise ExtractionError(f"Malformed metadata in extraction response: {metadata!r}")

    return Fragment(text=text, metadata={**metadata, "category": element.get("type", "")})


def parse_elements(payload: Any) -> list[Fragment]:
    """Turn a decoded API response into fragments.

    Raises:
        ExtractionError: If *payload* is not a non-empty list of element objects.
    """
    if not isinstance(payload, list):
        raise ExtractionError(
            f"Expected a JSON array from the extraction service, got {type(payload).__name__}"
        )
    if not payload:
        raise ExtractionError("Extraction service returned no elements")

    fragments: list[Fragment] = []
    for element in payload:
        fragment = _element_to_fragment(element)
        if fragment is not None:
            fragments.append(fragment)
    return fragments


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_fragments(
    path: Path,
    api_key: str | None = None,
    api_url: str | None = None,
    timeout: float | None = None,
) -> list[Fragment]:
    """Submit the file at *path* to the Unstructured API and return its fragments.

    Args:
        path: Local file to partition (the cached HTML page).
        api_key: Unstructured API key.  Defaults to ``UNSTRUCTURED_API_KEY``.
        api_url: Partition endpoint.  Defaults to ``settings.unstructured_api_url``.
        timeout: Client timeout in seconds.  Defaults to
            ``settings.extraction_timeout``.

    Raises:
        ExtractionError: If the key is missing, the file cannot be read, the
            service is unreachable or rejects the request, or the response is
            malformed or empty.
    """
    key = api_key if api_key is not None else settings.unstructured_api_key
    if not key:
        raise ExtractionError("UNSTRUCTURED_API_KEY environment variable is not set.")

    url = api_url or settings.unstructured_api_url

    try:
        content = path.read_bytes()
    except OSError as exc:
        raise ExtractionError(f"Cannot read {path}: {exc}") from exc

    try:
        with httpx.Client(
            timeout=timeout if timeout is not None else settings.extraction_timeout
        ) as client:
            response = client.post(
                url,
                headers={"unstructured-api-key": key, "accept": "application/json"},
                files={"files": (path.name, content, "text/html")},
            )
            response.raise_for_status()
            payload = response.json()
    except httpx.HTTPStatusError as exc:
        raise ExtractionError(
            f"Extraction service returned HTTP {exc.response.status_code}"
        ) from exc
    except httpx.HTTPError as exc:
        raise ExtractionError(f"Extraction service unreachable: {exc}") from exc
    except ValueError as exc:
        raise ExtractionError("Extraction service returned invalid JSON") from exc

    fragments = parse_elements(payload)
    logger.debug("Extracted %d fragments from %d elements", len(fragments), len(payload))
    return fragments
