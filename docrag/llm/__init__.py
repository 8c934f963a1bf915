"""
Provider adapters: generation client and embedding interfaces.

The sentence-transformers embedder lives in ``docrag.llm.embeddings`` and is
imported on demand so that the model stack is only loaded when used.
"""

from .client import GenerationClient, GenerationError, create_client
from .providers import EmbeddingProvider, GenerationProvider, cosine_similarity

__all__ = [
    "GenerationClient",
    "GenerationError",
    "create_client",
    "EmbeddingProvider",
    "GenerationProvider",
    "cosine_similarity",
]
