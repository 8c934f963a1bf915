"""
Two-pass retrieval for broad or abstract queries.

Pass 1 retrieves broadly for the raw query; the generation provider then names
the key concepts in that context, and pass 2 retrieves a few chunks per
concept. Pass-1 order is kept and pass-2 chunks are appended if new.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from docrag.llm.providers import GenerationProvider

from .config import RAGConfig
from .dense import DenseSearcher
from .fallback import Outcome
from .index import Chunk, dedupe_chunks
from .prompts import CONCEPT_EXTRACTION_PROMPT
from .utils import parse_lines

logger = logging.getLogger(__name__)


class MultiPassRetriever:
    def __init__(
        self,
        dense: DenseSearcher,
        llm: GenerationProvider,
        config: Optional[RAGConfig] = None,
    ):
        self.dense = dense
        self.llm = llm
        self.config = config or RAGConfig()

    async def try_extract_concepts(self, query: str, context_chunks: Sequence[Chunk]) -> Outcome[List[str]]:
        context = "\n\n".join(
            f"[Chunk {i}]\n{chunk.text}"
            for i, chunk in enumerate(context_chunks[: self.config.concept_context_k], 1)
        )
        prompt = CONCEPT_EXTRACTION_PROMPT.format(query=query, context=context)
        try:
            response = await self.llm.generate(prompt)
        except Exception as e:
            logger.warning("Failed to extract concepts, using original query: %s", e)
            return Outcome.fallback([query], e)
        concepts = parse_lines(response or "", self.config.max_concepts)
        if not concepts:
            return Outcome.fallback([query], ValueError("no concepts in response"))
        return Outcome.ok(concepts)

    async def extract_concepts(self, query: str, context_chunks: Sequence[Chunk]) -> List[str]:
        return (await self.try_extract_concepts(query, context_chunks)).value

    async def retrieve(self, query: str, chunks: Sequence[Chunk], top_k: int = 10) -> List[Chunk]:
        first_pass = await self.dense.search(query, chunks, top_k=self.config.first_pass_k)
        if not first_pass:
            return []

        concepts = await self.extract_concepts(query, first_pass)
        logger.info("Multi-pass: %s concepts from %s first-pass chunks", len(concepts), len(first_pass))

        second_pass: List[Chunk] = []
        for concept in concepts:
            second_pass.extend(
                await self.dense.search(concept, chunks, top_k=self.config.second_pass_k)
            )

        return dedupe_chunks(list(first_pass) + second_pass)[:top_k]
