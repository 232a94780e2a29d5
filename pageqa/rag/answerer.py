"""Retrieval-augmented question answering over the page index.

``answer_question`` retrieves the fragments closest to the question, stuffs
them into a single grounded prompt, and calls the chat model once.  The
fragments used as context are returned with the answer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from langchain_core.prompts import PromptTemplate

from pageqa.config import Settings, settings
from pageqa.errors import GenerationError
from pageqa.scraper.models import Fragment

if TYPE_CHECKING:
    from pageqa.index.store import Retriever

logger = logging.getLogger(__name__)

QA_PROMPT = PromptTemplate.from_template(
    "Use the following pieces of context to answer the question at the end. "
    "If you don't know the answer, just say that you don't know, don't try to "
    "make up an answer.\n\n"
    "{context}\n\n"
    "Question: {question}\n"
    "Helpful Answer:"
)


@dataclass
class Answer:
    text: str
    sources: list[Fragment] = field(default_factory=list)


# ---------------------------------------------------------------------------
# LLM helper
# ---------------------------------------------------------------------------

def _get_llm(cfg: Settings) -> Any:
    """Return the LangChain chat model described by *cfg*."""
    api_key = cfg.openai_api_key
    if not api_key:
        raise GenerationError("OPENAI_API_KEY environment variable is not set.")

    from langchain_openai import ChatOpenAI

    return ChatOpenAI(
        model=cfg.openai_chat_model,
        temperature=0,
        api_key=api_key,
        base_url=cfg.openai_base_url,
    )


def build_prompt(question: str, fragments: list[Fragment]) -> str:
    """Format *fragments* as the context block of the grounded prompt."""
    context = "\n\n".join(f.text for f in fragments)
    return QA_PROMPT.format(context=context, question=question)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def answer_question(
    retriever: Retriever,
    question: str,
    llm: Any = None,
    run_settings: Settings | None = None,
) -> Answer:
    """Answer *question* from the fragments *retriever* returns.

    Args:
        retriever: Bound index retriever (embeds the question, returns top-k).
        question: The natural-language question.
        llm: A LangChain chat model.  Defaults to ``ChatOpenAI`` built from
            *run_settings*.
        run_settings: Settings supplying chat model, base URL and key.
            Defaults to the module singleton.

    Returns:
        An :class:`Answer` whose ``sources`` are the retrieved fragments in
        retrieval order.

    Raises:
        EmbeddingError: If the question cannot be embedded.
        GenerationError: If the key is missing or the chat model call fails.
    """
    sources = retriever.retrieve(question)
    prompt = build_prompt(question, sources)
    logger.debug("Prompting with %d fragments (%d chars)", len(sources), len(prompt))

    model = llm if llm is not None else _get_llm(run_settings or settings)
    try:
        response = model.invoke(prompt)
    except Exception as exc:  # noqa: BLE001
        raise GenerationError(f"Chat completion failed: {exc}") from exc

    text = response.content if hasattr(response, "content") else str(response)
    return Answer(text=str(text).strip(), sources=sources)
