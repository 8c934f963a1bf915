"""
Unified retriever interface for RAG pipeline.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Protocol, Sequence

from .config import RAGConfig
from .dense import DenseSearcher
from .index import Chunk
from .query_expansion import QueryExpander
from .rrf_merger import rrf_merge

logger = logging.getLogger(__name__)


class Retriever(Protocol):
    """Protocol for retrieval implementations."""

    async def retrieve(self, query: str, chunks: Sequence[Chunk], top_k: int) -> List[Chunk]:
        """
        Retrieve chunks matching the query.

        Args:
            query: User query string
            chunks: Candidate pool (read-only)
            top_k: Number of results to return

        Returns:
            Chunks ranked best first
        """
        ...


class SemanticRetriever:
    """Single-query dense retrieval."""

    def __init__(self, dense: DenseSearcher):
        self.dense = dense

    async def retrieve(self, query: str, chunks: Sequence[Chunk], top_k: int = 10) -> List[Chunk]:
        return await self.dense.search(query, chunks, top_k=top_k)


class MultiQueryRetriever:
    """Dense retrieval for every expanded query variant, fused with RRF."""

    def __init__(
        self,
        dense: DenseSearcher,
        expander: QueryExpander,
        config: Optional[RAGConfig] = None,
    ):
        self.dense = dense
        self.expander = expander
        self.config = config or RAGConfig()

    async def retrieve(self, query: str, chunks: Sequence[Chunk], top_k: int = 10) -> List[Chunk]:
        variants = await self.expander.expand(query)
        per_variant_k = max(top_k * 2, 10)
        ranked_lists = await asyncio.gather(
            *(self.dense.search(v, chunks, top_k=per_variant_k) for v in variants)
        )
        logger.debug("Multi-query: fusing %s variant result lists", len(ranked_lists))
        return rrf_merge(list(ranked_lists), top_k=top_k, k_rrf=self.config.rrf_k)
