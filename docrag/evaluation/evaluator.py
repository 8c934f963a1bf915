"""
Dataset evaluation of a RAG system: retrieval metrics of the chunks each
query used, plus LLM-judged quality of the answer it produced.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from docrag.orchestrator import RAGSystem
from docrag.rag.config import RetrievalOptions
from docrag.rag.index import Chunk
from docrag.rag.rrf_merger import rrf_merge_with_similarities

from . import retrieval_metrics
from .generation_metrics import GenerationJudge, GenerationMetrics, average_generation
from .retrieval_metrics import EvalItem, RetrievalMetrics, evaluate_dataset

logger = logging.getLogger(__name__)


@dataclass
class QueryEvaluation:
    query: str
    answer: str
    chunks: List[Chunk]
    retrieval: RetrievalMetrics
    generation: GenerationMetrics


@dataclass
class EvaluationReport:
    results: List[QueryEvaluation] = field(default_factory=list)
    retrieval: RetrievalMetrics = field(default_factory=RetrievalMetrics)
    generation: GenerationMetrics = field(default_factory=GenerationMetrics)

    @property
    def total_queries(self) -> int:
        return len(self.results)


class RAGEvaluator:
    """Runs dataset queries through ``RAGSystem.query`` and scores every step."""

    def __init__(
        self,
        system: RAGSystem,
        judge: Optional[GenerationJudge] = None,
        options: Optional[RetrievalOptions] = None,
    ):
        self.system = system
        self.judge = judge or GenerationJudge(system.llm)
        self.options = options or RetrievalOptions()

    async def evaluate_single(
        self, query: str, relevant_chunk_ids: Optional[Sequence[str]] = None, k: int = 5
    ) -> QueryEvaluation:
        """
        Answer ``query`` and score it.

        Retrieval metrics are zero when no relevant ids are given.
        """
        result = await self.system.query(query, top_k=k, options=self.options)
        if relevant_chunk_ids:
            retrieval = retrieval_metrics.evaluate(result.chunks, relevant_chunk_ids, k)
        else:
            retrieval = RetrievalMetrics()
        generation = await self.judge.evaluate(query, result.chunks, result.answer)
        return QueryEvaluation(
            query=query,
            answer=result.answer,
            chunks=result.chunks,
            retrieval=retrieval,
            generation=generation,
        )

    async def evaluate(self, items: Sequence[EvalItem], k: int = 5) -> EvaluationReport:
        """Per-query results and their averages over ``items``, in dataset order."""
        results: List[QueryEvaluation] = []
        for i, item in enumerate(items, 1):
            logger.info("Evaluating query %s/%s: %s", i, len(items), item.query)
            results.append(await self.evaluate_single(item.query, item.relevant_chunk_ids, k))
        return EvaluationReport(
            results=results,
            retrieval=retrieval_metrics.average([r.retrieval for r in results]),
            generation=average_generation([r.generation for r in results]),
        )

    async def baseline_retrieve(self, query: str, k: int = 5) -> List[Chunk]:
        """
        Strategy-free reference ranking for comparison with the configured one.

        Dense and keyword searches each return ``2k`` scored candidates;
        keyword scores are scaled by the best one so both lie in [0, 1], and
        the lists are fused with similarity-weighted RRF.
        """
        chunks = self.system.load_chunks(self.options)
        dense_pairs, keyword_pairs = await asyncio.gather(
            self.system.dense.search_scored(query, chunks, top_k=k * 2),
            asyncio.to_thread(self.system.keyword.search, query, chunks, k * 2),
        )
        best = keyword_pairs[0][1] if keyword_pairs else 0.0
        if best > 0:
            keyword_pairs = [(c, s / best) for c, s in keyword_pairs]
        return rrf_merge_with_similarities(
            [dense_pairs, keyword_pairs], top_k=k, k_rrf=self.system.config.rrf_k
        )

    async def evaluate_baseline(self, items: Sequence[EvalItem], k: int = 5) -> RetrievalMetrics:
        return await evaluate_dataset(items, self.baseline_retrieve, k)
