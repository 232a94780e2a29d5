"""The page-qa run, end to end.

``run_pipeline`` sequences the stages:

    fetch → cache → extract → embed/index → retrieve/answer

Every stage consumes the previous stage's output and the first error aborts
the run; nothing is retried.  Progress is reported through the
:class:`~pageqa.steplog.StepLog` passed in by the caller.
"""

from __future__ import annotations

from functools import partial

from pageqa.config import QueryConfig, Settings, settings as default_settings
from pageqa.index.store import VectorIndex
from pageqa.rag.answerer import Answer, answer_question
from pageqa.rag.embedder import embed_query, embed_texts
from pageqa.scraper.cache import ensure_cache_dir, write_cache
from pageqa.scraper.extractor import extract_fragments
from pageqa.scraper.fetcher import fetch_url
from pageqa.steplog import StepLog


def run_pipeline(
    config: QueryConfig | None = None,
    settings: Settings | None = None,
    log: StepLog | None = None,
) -> Answer:
    """Fetch ``config.url``, index its content, and answer ``config.question``.

    Args:
        config: Page and question.  Defaults to the fixed :class:`QueryConfig`.
        settings: Runtime settings.  Defaults to the module singleton.
        log: Step log for progress lines.  A fresh one is started if omitted.

    Returns:
        The :class:`~pageqa.rag.answerer.Answer` with its source fragments.

    Raises:
        PipelineError: Any stage failure (see :mod:`pageqa.errors`).
    """
    config = config or QueryConfig()
    settings = settings or default_settings
    log = log or StepLog()

    log.step("Starting pipeline")

    # ------------------------------------------------------------------
    # 1 — Embedding client
    # ------------------------------------------------------------------
    embed = partial(
        embed_texts,
        batch_size=settings.embedding_batch_size,
        max_workers=settings.embedding_max_workers,
        run_settings=settings,
    )
    log.step(f"OpenAI embeddings configured (batch size {settings.embedding_batch_size})")

    # ------------------------------------------------------------------
    # 2 — Fetch
    # ------------------------------------------------------------------
    raw = fetch_url(config.url, timeout=settings.request_timeout)
    log.step(f"GET request to {config.url} completed")

    # ------------------------------------------------------------------
    # 3 — Cache
    # ------------------------------------------------------------------
    ensure_cache_dir(settings.cache_dir)
    log.step(f"Cache directory checked/created ({settings.cache_dir})")

    cache_path = write_cache(settings.cache_dir, settings.cache_file_name, raw.html)
    log.step("Response data saved as HTML file")

    # ------------------------------------------------------------------
    # 4 — Extract
    # ------------------------------------------------------------------
    fragments = extract_fragments(
        cache_path,
        api_key=settings.unstructured_api_key,
        api_url=settings.unstructured_api_url,
        timeout=settings.extraction_timeout,
    )
    log.step("HTML file loaded")
    log.step(f"Extracted data converted into {len(fragments)} fragments")

    # ------------------------------------------------------------------
    # 5 — Embed and index
    # ------------------------------------------------------------------
    with VectorIndex.from_fragments(fragments, embed=embed) as index:
        log.step("Vector index created with embeddings")

        # --------------------------------------------------------------
        # 6 — Retrieve and answer
        # --------------------------------------------------------------
        retriever = index.as_retriever(
            settings.top_k, embed_query=partial(embed_query, run_settings=settings)
        )
        log.step("QA chain set up")

        answer = answer_question(retriever, config.question, run_settings=settings)
        log.step("QA Response", answer.text)

    log.step("Execution timing ended")
    return answer
