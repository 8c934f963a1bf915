"""
Hybrid searcher combining BM25 and dense retrieval with RRF or weighted fusion.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .bm25 import KeywordSearcher
from .config import RAGConfig
from .dense import DenseSearcher
from .index import Chunk
from .rrf_merger import rrf_merge

logger = logging.getLogger(__name__)


def weighted_merge(
    semantic: Sequence[Chunk],
    keyword: Sequence[Chunk],
    top_k: int,
    semantic_weight: float = 0.7,
    keyword_weight: float = 0.3,
) -> List[Chunk]:
    """
    Linear fusion of two ranked lists by normalized rank ``1 / (rank + 1)``.

    A chunk present in both lists accumulates both weighted contributions.
    """
    scores: Dict[str, Tuple[Chunk, float]] = {}
    for weight, results in ((semantic_weight, semantic), (keyword_weight, keyword)):
        for rank, chunk in enumerate(results):
            contribution = weight / (rank + 1)
            key = chunk.key
            if key in scores:
                kept, score = scores[key]
                scores[key] = (kept, score + contribution)
            else:
                scores[key] = (chunk, contribution)
    merged = sorted(scores.values(), key=lambda x: x[1], reverse=True)
    return [chunk for chunk, _ in merged[:top_k]]


class HybridSearcher:
    """Hybrid searcher combining BM25 and dense retrieval."""

    def __init__(
        self,
        dense: DenseSearcher,
        keyword: KeywordSearcher,
        config: Optional[RAGConfig] = None,
    ):
        self.dense = dense
        self.keyword = keyword
        self.config = config or RAGConfig()

    async def retrieve(self, query: str, chunks: Sequence[Chunk], top_k: int = 10) -> List[Chunk]:
        """Run semantic and keyword search concurrently, each for 2*top_k, then fuse."""
        candidate_k = top_k * 2
        semantic_results, keyword_pairs = await asyncio.gather(
            self.dense.search(query, chunks, top_k=candidate_k),
            asyncio.to_thread(self.keyword.search, query, chunks, candidate_k),
        )
        keyword_results = [c for c, _ in keyword_pairs]
        logger.debug(
            "Hybrid: %s semantic + %s keyword candidates",
            len(semantic_results),
            len(keyword_results),
        )

        if self.config.use_rrf:
            return rrf_merge(
                [semantic_results, keyword_results], top_k=top_k, k_rrf=self.config.rrf_k
            )
        return weighted_merge(
            semantic_results,
            keyword_results,
            top_k,
            semantic_weight=self.config.semantic_weight,
            keyword_weight=self.config.keyword_weight,
        )
