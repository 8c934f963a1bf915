"""
Answer generator: builds context, calls the generation provider, returns answer text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from docrag.llm.providers import GenerationProvider
from docrag.rag.index import Chunk

from .config import GenerationConfig
from .context_builder import build_context
from .prompts import ANSWER_PROMPT, NO_CONTEXT_ANSWER

logger = logging.getLogger(__name__)


@dataclass
class GeneratedAnswer:
    """Result of RAG answer generation."""

    answer: str
    chunks: List[Chunk] = field(default_factory=list)

    @property
    def has_context(self) -> bool:
        return bool(self.chunks)


def build_prompt(query: str, chunks: Sequence[Chunk], config: Optional[GenerationConfig] = None) -> str:
    config = config or GenerationConfig()
    context = build_context(
        chunks,
        max_tokens=config.context_max_tokens,
        include_sources=config.include_sources,
    )
    return ANSWER_PROMPT.format(context=context, query=query)


class AnswerGenerator:
    """Generate answers from a query and retrieved chunks using the LLM."""

    def __init__(self, llm: GenerationProvider, config: Optional[GenerationConfig] = None):
        self.llm = llm
        self.config = config or GenerationConfig()

    async def generate(self, query: str, chunks: Sequence[Chunk]) -> GeneratedAnswer:
        """
        One provider call over the assembled context.

        With no chunks the fixed no-context answer is returned and the provider
        is not called. Provider errors propagate.
        """
        if not chunks:
            return GeneratedAnswer(answer=NO_CONTEXT_ANSWER)
        prompt = build_prompt(query, chunks, self.config)
        logger.debug("Sending %s-char prompt with %s context chunks", len(prompt), len(chunks))
        answer = await self.llm.generate(prompt)
        return GeneratedAnswer(answer=(answer or "").strip(), chunks=list(chunks))
