"""page-qa: ask one question about one web page.

Fetches the page, caches the HTML, extracts its content through the
Unstructured API, indexes it with OpenAI embeddings in an in-memory
sqlite-vec table, and answers the question with an OpenAI chat model.
"""

from pageqa.config import QueryConfig, settings
from pageqa.pipeline import run_pipeline

__version__ = "0.1.0"

__all__ = ["QueryConfig", "settings", "run_pipeline"]
