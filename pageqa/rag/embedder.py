"""Batched text embedder backed by the OpenAI embeddings API.

Inputs are split into batches of at most ``settings.embedding_batch_size``
strings.  Batches are posted concurrently on a small thread pool and the
results are merged back in input order, so ``vectors[i]`` always belongs to
``texts[i]``.  If any batch fails, the whole call fails.

Requires ``OPENAI_API_KEY`` to be set.  Configure the model via
``OPENAI_EMBED_MODEL``.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Sequence

import httpx

from pageqa.config import Settings, settings
from pageqa.errors import EmbeddingError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _batched(texts: Sequence[str], batch_size: int) -> list[list[str]]:
    """Split *texts* into consecutive batches of at most *batch_size* items."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return [list(texts[i : i + batch_size]) for i in range(0, len(texts), batch_size)]


def _require_api_key(cfg: Settings) -> str:
    api_key = cfg.openai_api_key
    if not api_key:
        raise EmbeddingError("OPENAI_API_KEY environment variable is not set.")
    return api_key


def _vectors_from(payload: Any, batch: list[str]) -> list[list[float]]:
    """Validate an embeddings response body and return its vectors in input order."""
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list):
        raise EmbeddingError("Malformed embedding response: missing 'data' list")
    if len(data) != len(batch):
        raise EmbeddingError(
            f"Embedding response has {len(data)} vectors for {len(batch)} inputs"
        )
    if not all(isinstance(item, dict) and isinstance(item.get("embedding"), list) for item in data):
        raise EmbeddingError("Malformed embedding response: item without 'embedding'")

    # The API tags each vector with the position of its input.
    ordered = sorted(data, key=lambda item: item.get("index", 0))
    return [item["embedding"] for item in ordered]


def _embed_batch(batch: list[str], api_key: str, cfg: Settings) -> list[list[float]]:
    """Call the OpenAI embeddings API for one batch and return its vectors."""
    try:
        with httpx.Client(timeout=60.0) as client:
            response = client.post(
                f"{cfg.openai_base_url}/embeddings",
                headers={"Authorization": f"Bearer {api_key}"},
                json={"model": cfg.openai_embed_model, "input": batch},
            )
            response.raise_for_status()
            payload = response.json()
    except httpx.HTTPStatusError as exc:
        raise EmbeddingError(
            f"Embedding request failed with HTTP {exc.response.status_code}"
        ) from exc
    except httpx.HTTPError as exc:
        raise EmbeddingError(f"Embedding service unreachable: {exc}") from exc
    except ValueError as exc:
        raise EmbeddingError("Malformed embedding response: invalid JSON") from exc

    return _vectors_from(payload, batch)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def embed_texts(
    texts: Sequence[str],
    batch_size: int | None = None,
    max_workers: int | None = None,
    run_settings: Settings | None = None,
) -> list[list[float]]:
    """Return one embedding vector per entry of *texts*, in the same order.

    Args:
        texts: The strings to embed.
        batch_size: Maximum inputs per API request.  Defaults to
            ``embedding_batch_size`` of the active settings.
        max_workers: Maximum concurrent requests.  Defaults to
            ``embedding_max_workers`` of the active settings.
        run_settings: Settings supplying model, base URL and key.  Defaults
            to the module singleton.

    Raises:
        EmbeddingError: If the API key is missing or any batch fails.
    """
    if not texts:
        return []

    cfg = run_settings or settings
    api_key = _require_api_key(cfg)
    batches = _batched(texts, batch_size or cfg.embedding_batch_size)
    workers = max(1, min(max_workers or cfg.embedding_max_workers, len(batches)))
    logger.debug("Embedding %d texts in %d batches (%d workers)", len(texts), len(batches), workers)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        # map() yields in submission order and re-raises the first failure.
        results = list(pool.map(lambda batch: _embed_batch(batch, api_key, cfg), batches))

    return [vector for batch_vectors in results for vector in batch_vectors]


def embed_query(text: str, run_settings: Settings | None = None) -> list[float]:
    """Return the embedding vector for a single query string."""
    return embed_texts([text], run_settings=run_settings)[0]
