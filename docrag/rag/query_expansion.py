"""
LLM-based query expansion: paraphrased variants of a query for multi-query retrieval.
"""

from __future__ import annotations

import logging
from typing import List

from docrag.llm.providers import GenerationProvider

from .fallback import Outcome
from .prompts import QUERY_EXPANSION_PROMPT
from .utils import parse_lines

logger = logging.getLogger(__name__)

MIN_VARIATIONS = 2
MAX_VARIATIONS = 5


class QueryExpander:
    """Expand a query into ``num_variations`` phrasings, original first."""

    def __init__(self, llm: GenerationProvider, num_variations: int = 3):
        self.llm = llm
        self.num_variations = max(MIN_VARIATIONS, min(MAX_VARIATIONS, num_variations))

    async def try_expand(self, query: str) -> Outcome[List[str]]:
        wanted = self.num_variations - 1
        prompt = QUERY_EXPANSION_PROMPT.format(count=wanted, query=query)
        try:
            response = await self.llm.generate(prompt)
        except Exception as e:
            logger.warning("Query expansion failed, using original query: %s", e)
            return Outcome.fallback([query], e)

        variants = [query] + parse_lines(response or "", wanted)
        while len(variants) < self.num_variations:
            variants.append(query)
        return Outcome.ok(variants)

    async def expand(self, query: str) -> List[str]:
        """Variants of ``query``; ``[query]`` alone if the provider fails."""
        outcome = await self.try_expand(query)
        logger.debug("Expanded query into %s variants", len(outcome.value))
        return outcome.value
