"""page-qa CLI — entry-point for the pipeline.

Usage:
    python cli/main.py --help

Commands:
    ask      → full run: fetch, cache, extract, index, answer
    extract  → fetch, cache and extract only; prints the fragments
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from pageqa.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import logging
from dataclasses import replace
from typing import NoReturn, Optional

import typer

from pageqa.config import QueryConfig, settings
from pageqa.errors import PipelineError
from pageqa.logging_config import setup_logging
from pageqa.steplog import StepLog

from cli.rendering import render_fragments, render_sources

logger = logging.getLogger("pageqa.cli")

app = typer.Typer(
    name="pageqa",
    help="Answer one question about one web page.",
    no_args_is_help=True,
)


def _fail(exc: PipelineError, verbose: bool) -> NoReturn:
    """Report a pipeline failure and exit non-zero."""
    if verbose:
        logger.exception("Pipeline aborted")
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


@app.command("ask")
def ask(
    top_k: Optional[int] = typer.Option(
        None, "--top-k", min=1, help="Number of fragments to retrieve."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Run the full pipeline; the answer is echoed by its step log, then the sources."""
    from pageqa.pipeline import run_pipeline

    setup_logging(logging.DEBUG if verbose else logging.INFO)
    run_settings = replace(settings, top_k=top_k) if top_k else settings

    try:
        answer = run_pipeline(QueryConfig(), run_settings, StepLog())
    except PipelineError as exc:
        _fail(exc, verbose)

    # The answer itself is already echoed by the "QA Response" step.
    if answer.sources:
        typer.echo("")
        typer.echo(render_sources(answer.sources))


@app.command("extract")
def extract(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Fetch and cache the page, then print the extracted fragments."""
    from pageqa.scraper import extract_fragments, fetch_url, write_cache

    setup_logging(logging.DEBUG if verbose else logging.INFO)
    config = QueryConfig()
    log = StepLog()

    try:
        raw = fetch_url(config.url, timeout=settings.request_timeout)
        log.step(f"GET request to {config.url} completed (HTTP {raw.status_code})")
        path = write_cache(settings.cache_dir, settings.cache_file_name, raw.html)
        log.step(f"Response data saved to {path}")
        fragments = extract_fragments(path)
        log.step(f"Extracted {len(fragments)} fragments")
    except PipelineError as exc:
        _fail(exc, verbose)

    typer.echo(render_fragments(fragments))


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
