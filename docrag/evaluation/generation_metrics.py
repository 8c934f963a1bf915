"""
Generation evaluation with an LLM judge: faithfulness and answer relevance.

Each metric is one yes/no question to the generation provider, scored 1.0 for
"yes", 0.0 for "no" and 0.5 when the verdict is unclear or the call fails.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from docrag.llm.providers import GenerationProvider
from docrag.rag.fallback import Outcome
from docrag.rag.index import Chunk

from .prompts import ANSWER_RELEVANCE_PROMPT, FAITHFULNESS_PROMPT

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 0.5
VERDICT_RE = re.compile(r"\b(yes|no)\b", re.IGNORECASE)


@dataclass
class GenerationMetrics:
    faithfulness: float = 0.0
    answer_relevance: float = 0.0


def parse_verdict(response: str) -> Optional[float]:
    """1.0 or 0.0 for the first standalone "yes"/"no" in ``response``, else None."""
    match = VERDICT_RE.search(response or "")
    if match is None:
        return None
    return 1.0 if match.group(1).lower() == "yes" else 0.0


def format_context(chunks: Sequence[Chunk]) -> str:
    return "\n\n".join(f"[Context {i}]\n{c.text}" for i, c in enumerate(chunks, 1))


def average_generation(metrics: Sequence[GenerationMetrics]) -> GenerationMetrics:
    if not metrics:
        return GenerationMetrics()
    n = len(metrics)
    return GenerationMetrics(
        faithfulness=sum(m.faithfulness for m in metrics) / n,
        answer_relevance=sum(m.answer_relevance for m in metrics) / n,
    )


class GenerationJudge:
    """Scores generated answers by asking the generation provider yes/no questions."""

    def __init__(self, llm: GenerationProvider):
        self.llm = llm

    async def _verdict(self, prompt: str, metric: str) -> Outcome[float]:
        try:
            response = await self.llm.generate(prompt)
        except Exception as e:
            logger.warning("Failed to evaluate %s, using neutral score: %s", metric, e)
            return Outcome.fallback(NEUTRAL_SCORE, e)
        score = parse_verdict(response)
        if score is None:
            logger.debug("Unclear %s verdict %r, using neutral score", metric, response)
            return Outcome.fallback(NEUTRAL_SCORE, ValueError(f"unclear verdict: {response!r}"))
        return Outcome.ok(score)

    async def faithfulness(self, query: str, chunks: Sequence[Chunk], response: str) -> float:
        """Is ``response`` supported by the retrieved ``chunks``?"""
        prompt = FAITHFULNESS_PROMPT.format(
            query=query, context=format_context(chunks), response=response
        )
        return (await self._verdict(prompt, "faithfulness")).value

    async def answer_relevance(self, query: str, response: str) -> float:
        """Does ``response`` answer ``query``?"""
        prompt = ANSWER_RELEVANCE_PROMPT.format(query=query, response=response)
        return (await self._verdict(prompt, "answer relevance")).value

    async def evaluate(self, query: str, chunks: Sequence[Chunk], response: str) -> GenerationMetrics:
        faithfulness, relevance = await asyncio.gather(
            self.faithfulness(query, chunks, response),
            self.answer_relevance(query, response),
        )
        return GenerationMetrics(faithfulness=faithfulness, answer_relevance=relevance)
