"""Centralised settings for the page-qa pipeline.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).

The page and the question are deliberately *not* environment driven: a run
always asks :data:`QUESTION` about :data:`TARGET_URL`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


TARGET_URL = "https://news.ycombinator.com"
QUESTION = "What is the second story on hacker news?"


@dataclass(frozen=True)
class QueryConfig:
    """The page to read and the question to ask about it."""

    url: str = TARGET_URL
    question: str = QUESTION


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------
    cache_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("PAGEQA_CACHE_DIR", "cache"))
    )
    cache_file_name: str = "response.html"

    @property
    def cache_path(self) -> Path:
        """Path of the cached HTML snapshot."""
        return self.cache_dir / self.cache_file_name

    # ------------------------------------------------------------------
    # Fetcher
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )

    # ------------------------------------------------------------------
    # Content extraction (Unstructured API)
    # ------------------------------------------------------------------
    unstructured_api_url: str = field(
        default_factory=lambda: os.environ.get(
            "UNSTRUCTURED_API_URL",
            "https://api.unstructuredapp.io/general/v0/general",
        )
    )

    extraction_timeout: float = field(
        default_factory=lambda: float(os.environ.get("EXTRACTION_TIMEOUT", "120.0"))
    )

    @property
    def unstructured_api_key(self) -> str:
        """Read lazily so a missing key only fails the extraction stage."""
        return os.environ.get("UNSTRUCTURED_API_KEY", "")

    # ------------------------------------------------------------------
    # OpenAI (embeddings + chat)
    # ------------------------------------------------------------------
    openai_base_url: str = field(
        default_factory=lambda: os.environ.get(
            "OPENAI_BASE_URL", "https://api.openai.com/v1"
        )
    )
    openai_embed_model: str = field(
        default_factory=lambda: os.environ.get(
            "OPENAI_EMBED_MODEL", "text-embedding-ada-002"
        )
    )
    openai_chat_model: str = field(
        default_factory=lambda: os.environ.get("OPENAI_CHAT_MODEL", "gpt-3.5-turbo")
    )

    @property
    def openai_api_key(self) -> str:
        return os.environ.get("OPENAI_API_KEY", "")

    # ------------------------------------------------------------------
    # Indexing / retrieval
    # ------------------------------------------------------------------
    embedding_batch_size: int = field(
        default_factory=lambda: int(os.environ.get("EMBEDDING_BATCH_SIZE", "512"))
    )
    embedding_max_workers: int = field(
        default_factory=lambda: int(os.environ.get("EMBEDDING_MAX_WORKERS", "4"))
    )
    top_k: int = field(
        default_factory=lambda: int(os.environ.get("TOP_K", "4"))
    )


# Module-level singleton — import this everywhere:
#   from pageqa.config import settings
settings = Settings()
