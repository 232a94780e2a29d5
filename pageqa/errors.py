"""Exceptions raised by the pipeline stages.

Every stage wraps the errors of the library it drives (``httpx``, the
filesystem, LangChain) in one of these, chaining the original as
``__cause__``.  None of them is recovered inside the pipeline.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all page-qa errors."""


class NetworkError(PipelineError):
    """Raised when the target page cannot be fetched."""

    def __init__(
        self,
        url: str,
        reason: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        message = f"Failed to fetch URL: {url}"
        if status_code:
            message += f" (status code: {status_code})"
        if reason:
            message += f" - {reason}"
        super().__init__(message)


class FilesystemError(PipelineError):
    """Raised when the cache directory or cache file cannot be written."""


class ExtractionError(PipelineError):
    """Raised when the content-extraction service fails or returns nothing usable."""


class EmbeddingError(PipelineError):
    """Raised when embeddings cannot be computed for every input."""


class GenerationError(PipelineError):
    """Raised when the chat-completion call fails."""
