"""Embedding and answering package."""

from pageqa.rag.embedder import embed_query, embed_texts
from pageqa.rag.answerer import Answer, answer_question

__all__ = ["embed_texts", "embed_query", "answer_question", "Answer"]
