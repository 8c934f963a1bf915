"""
LLM reranker for second-stage re-ranking of retrieved chunks.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import List, Optional, Sequence, Tuple

from docrag.llm.providers import GenerationProvider

from .fallback import Outcome
from .index import Chunk
from .prompts import RERANK_PROMPT

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 0.5
SCORE_RE = re.compile(r"\d+(?:\.\d+)?")


def parse_score(response: str) -> Optional[float]:
    """First number in ``response`` clamped to [0, 1], or None."""
    match = SCORE_RE.search(response or "")
    if match is None:
        return None
    return max(0.0, min(1.0, float(match.group(0))))


class LLMReranker:
    """Scores each (query, chunk) pair with the generation provider, concurrently."""

    def __init__(self, llm: GenerationProvider, max_concurrency: int = 4):
        self.llm = llm
        self.max_concurrency = max(1, max_concurrency)

    async def try_score(self, query: str, chunk: Chunk) -> Outcome[float]:
        prompt = RERANK_PROMPT.format(query=query, chunk=chunk.text)
        try:
            response = await self.llm.generate(prompt)
        except Exception as e:
            logger.warning("Failed to score chunk, using neutral score: %s", e)
            return Outcome.fallback(NEUTRAL_SCORE, e)
        score = parse_score(response)
        if score is None:
            logger.warning("Failed to parse score from response %r, using 0.5", response)
            return Outcome.fallback(NEUTRAL_SCORE, ValueError(f"unparsable score: {response!r}"))
        return Outcome.ok(score)

    async def score_chunks(self, query: str, chunks: Sequence[Chunk]) -> List[Tuple[Chunk, float]]:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _score(chunk: Chunk) -> float:
            async with semaphore:
                return (await self.try_score(query, chunk)).value

        scores = await asyncio.gather(*(_score(c) for c in chunks))
        return list(zip(chunks, scores))

    async def rerank(self, query: str, chunks: Sequence[Chunk]) -> List[Chunk]:
        """
        Re-rank chunks by LLM relevance score.

        Args:
            query: User query
            chunks: Candidates to re-rank

        Returns:
            The same chunks sorted by score, highest first; equal scores keep
            their input order.
        """
        if not chunks:
            return []
        if len(chunks) == 1:
            return list(chunks)
        scored = await self.score_chunks(query, chunks)
        scored.sort(key=lambda x: x[1], reverse=True)
        logger.debug("Reranked %s chunks", len(scored))
        return [chunk for chunk, _ in scored]
