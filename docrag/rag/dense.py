"""
Dense semantic retriever over stored chunk embeddings.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional, Sequence, Tuple

import numpy as np

from docrag.llm.providers import EmbeddingProvider

from .index import Chunk

logger = logging.getLogger(__name__)


def _normalized_matrix(chunks: Sequence[Chunk]) -> np.ndarray:
    """Stack chunk embeddings into unit rows; ragged or empty rows become zeros."""
    dims = {len(c.embedding) for c in chunks if c.embedding}
    dim = max(dims) if dims else 0
    if len(dims) > 1:
        logger.warning("Chunk embeddings have mixed dimensions %s", sorted(dims))
    matrix = np.zeros((len(chunks), dim), dtype=np.float32)
    for i, c in enumerate(chunks):
        if len(c.embedding) == dim:
            matrix[i] = np.asarray(c.embedding, dtype=np.float32)
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return matrix / norms


class DenseSearcher:
    """Cosine-similarity search; caches the embedding matrix per chunk list."""

    def __init__(self, embedder: EmbeddingProvider):
        self.embedder = embedder
        # (chunk list, matrix) published together
        self._state: Optional[Tuple[Sequence[Chunk], np.ndarray]] = None
        self._lock = threading.Lock()

    def _embeddings(self, chunks: Sequence[Chunk]) -> np.ndarray:
        state = self._state
        if state is not None and state[0] is chunks:
            return state[1]
        matrix = _normalized_matrix(chunks)
        with self._lock:
            self._state = (chunks, matrix)
        return matrix

    def search_by_embedding(
        self, query_embedding: Sequence[float], chunks: Sequence[Chunk], top_k: int = 5
    ) -> List[Tuple[Chunk, float]]:
        """Top-k chunks by cosine similarity; ties keep corpus order."""
        if not chunks or top_k <= 0:
            return []
        matrix = self._embeddings(chunks)
        q = np.asarray(query_embedding, dtype=np.float32)
        if matrix.shape[1] != q.shape[0]:
            logger.warning(
                "Query embedding has %s dims but the index has %s",
                q.shape[0],
                matrix.shape[1],
            )
            return []
        q_norm = float(np.linalg.norm(q))
        if q_norm == 0.0:
            sims = np.zeros(len(chunks), dtype=np.float32)
        else:
            sims = matrix @ (q / q_norm)
        idxs = np.argsort(-sims, kind="stable")[:top_k]
        return [(chunks[int(idx)], float(sims[idx])) for idx in idxs]

    async def search_scored(
        self, query: str, chunks: Sequence[Chunk], top_k: int = 5
    ) -> List[Tuple[Chunk, float]]:
        if not chunks:
            return []
        query_embedding = await self.embedder.embed(query)
        return self.search_by_embedding(query_embedding, chunks, top_k=top_k)

    async def search(self, query: str, chunks: Sequence[Chunk], top_k: int = 5) -> List[Chunk]:
        """Search for top-k chunks using cosine similarity."""
        return [c for c, _ in await self.search_scored(query, chunks, top_k=top_k)]
