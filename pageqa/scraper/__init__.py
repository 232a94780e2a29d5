"""Scraper package — fetch, cache and content extraction."""

from pageqa.scraper.cache import write_cache
from pageqa.scraper.extractor import extract_fragments
from pageqa.scraper.fetcher import fetch_url
from pageqa.scraper.models import Fragment, RawPage

__all__ = ["fetch_url", "write_cache", "extract_fragments", "RawPage", "Fragment"]
