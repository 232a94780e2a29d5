"""In-memory nearest-neighbour index over embedded fragments.

The index is a sqlite-vec ``vec0`` virtual table inside a private
``:memory:`` SQLite database.  Row ``i`` holds the vector of fragment ``i``;
the fragments themselves stay in a Python list.  Distances are cosine
distances (``0.0`` = same direction).

The index is built once from the full fragment list and never updated.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Callable, Sequence

import sqlite_vec

from pageqa.errors import EmbeddingError
from pageqa.rag.embedder import embed_query as _default_embed_query
from pageqa.rag.embedder import embed_texts
from pageqa.scraper.models import Fragment

logger = logging.getLogger(__name__)

EmbedTexts = Callable[[Sequence[str]], list[list[float]]]
EmbedQuery = Callable[[str], list[float]]


@dataclass(frozen=True)
class ScoredFragment:
    fragment: Fragment
    distance: float


def _open_connection() -> sqlite3.Connection:
    """Open a private in-memory database with sqlite-vec loaded."""
    conn = sqlite3.connect(":memory:", check_same_thread=False)

    # enable_load_extension must be called before any load attempt;
    # it is immediately disabled again after loading.
    conn.enable_load_extension(True)
    sqlite_vec.load(conn)
    conn.enable_load_extension(False)
    return conn


class VectorIndex:
    """Cosine-distance index mapping vectors back to their fragments."""

    def __init__(self, fragments: Sequence[Fragment], vectors: Sequence[Sequence[float]]) -> None:
        if not fragments:
            raise EmbeddingError("No content to index: the fragment list is empty")
        if len(vectors) != len(fragments):
            raise EmbeddingError(
                f"Got {len(vectors)} embeddings for {len(fragments)} fragments"
            )

        self.dimension = len(vectors[0])
        if self.dimension == 0 or any(len(v) != self.dimension for v in vectors):
            raise EmbeddingError("Embeddings must share one non-zero dimension")

        self._fragments = list(fragments)
        self._conn = _open_connection()
        with self._conn:
            self._conn.execute(
                f"CREATE VIRTUAL TABLE fragments_vec USING vec0("
                f"embedding float[{self.dimension}] distance_metric=cosine)"
            )
            self._conn.executemany(
                "INSERT INTO fragments_vec(rowid, embedding) VALUES (?, ?)",
                (
                    (i, sqlite_vec.serialize_float32(list(vector)))
                    for i, vector in enumerate(vectors)
                ),
            )
        logger.debug("Indexed %d fragments (dim=%d)", len(self._fragments), self.dimension)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def from_fragments(
        cls,
        fragments: Sequence[Fragment],
        embed: EmbedTexts = embed_texts,
    ) -> VectorIndex:
        """Embed every fragment with *embed* and index the results.

        Fails before any embedding call when *fragments* is empty.

        Raises:
            EmbeddingError: On empty input or if any embedding batch fails.
        """
        if not fragments:
            raise EmbeddingError("No content to index: the fragment list is empty")
        vectors = embed([f.text for f in fragments])
        return cls(fragments, vectors)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._fragments)

    @property
    def fragments(self) -> list[Fragment]:
        return list(self._fragments)

    def search(self, vector: Sequence[float], k: int) -> list[ScoredFragment]:
        """Return up to *k* fragments closest to *vector*, nearest first."""
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        if len(vector) != self.dimension:
            raise ValueError(
                f"Query vector has dimension {len(vector)}, index expects {self.dimension}"
            )

        rows = self._conn.execute(
            """
            SELECT rowid, distance
            FROM   fragments_vec
            WHERE  embedding MATCH ?
              AND  k = ?
            ORDER  BY distance
            """,
            (sqlite_vec.serialize_float32(list(vector)), min(k, len(self._fragments))),
        ).fetchall()
        return [ScoredFragment(self._fragments[rowid], distance) for rowid, distance in rows]

    def as_retriever(self, k: int, embed_query: EmbedQuery = _default_embed_query) -> Retriever:
        return Retriever(index=self, k=k, embed_query=embed_query)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> VectorIndex:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@dataclass
class Retriever:
    """Question → top-k fragments, via the index's embedding space."""

    index: VectorIndex
    k: int
    embed_query: EmbedQuery = _default_embed_query

    def retrieve(self, question: str) -> list[Fragment]:
        vector = self.embed_query(question)
        return [hit.fragment for hit in self.index.search(vector, self.k)]
