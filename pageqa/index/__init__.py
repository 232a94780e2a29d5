"""Vector index package."""

from pageqa.index.store import Retriever, ScoredFragment, VectorIndex

__all__ = ["VectorIndex", "Retriever", "ScoredFragment"]
