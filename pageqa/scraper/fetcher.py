"""HTTP fetcher for the target page."""

from __future__ import annotations

import logging

import httpx

from pageqa.config import settings
from pageqa.errors import NetworkError
from pageqa.scraper.models import RawPage

logger = logging.getLogger(__name__)

_DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (compatible; page-qa/0.1; +https://github.com/page-qa)"
    )
}


def fetch_url(url: str, timeout: float | None = None) -> RawPage:
    """Fetch *url* with a single GET and return a :class:`RawPage`.

    There is no retry: the first failure is final.

    Raises:
        NetworkError: On transport errors, timeouts, or a non-2xx status.
    """
    try:
        with httpx.Client(
            headers=_DEFAULT_HEADERS,
            timeout=timeout if timeout is not None else settings.request_timeout,
            follow_redirects=True,
        ) as client:
            response = client.get(url)
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise NetworkError(
            url, reason=exc.response.reason_phrase, status_code=exc.response.status_code
        ) from exc
    except httpx.HTTPError as exc:
        raise NetworkError(url, reason=str(exc) or type(exc).__name__) from exc

    logger.debug("Fetched %s: HTTP %d, %d chars", url, response.status_code, len(response.text))
    return RawPage(url=url, html=response.text, status_code=response.status_code)
