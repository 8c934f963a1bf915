"""
Semantic chunker: cut documents where adjacent sentences stop being similar.

Sentences are embedded, and a topic boundary is placed wherever the cosine
similarity of two neighbouring sentences falls below the threshold. Groups of
sentences between boundaries are then packed into chunks bounded by the
minimum and maximum chunk sizes.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import List, Optional, Sequence, Tuple

from docrag.llm.providers import EmbeddingProvider, cosine_similarity
from docrag.rag.fallback import Outcome
from docrag.rag.index import Chunk
from docrag.rag.utils import sentence_spans

from .chunker import make_metadata

logger = logging.getLogger(__name__)

Span = Tuple[int, int]


def _similarity(a: Sequence[float], b: Sequence[float]) -> float:
    try:
        return cosine_similarity(a, b)
    except ValueError:
        # dimension mismatch, e.g. a zero-vector fallback
        return 0.0


def boundary_groups(spans: Sequence[Span], similarities: Sequence[float], threshold: float) -> List[Span]:
    """Merge consecutive sentence spans until a similarity drops below ``threshold``."""
    if not spans:
        return []
    groups: List[Span] = []
    group_start = spans[0][0]
    for i, sim in enumerate(similarities):
        if sim < threshold:
            groups.append((group_start, spans[i][1]))
            group_start = spans[i + 1][0]
    groups.append((group_start, spans[-1][1]))
    return groups


def split_oversized(groups: Sequence[Span], max_size: int) -> List[Span]:
    """Cut any group longer than ``max_size`` into consecutive ``max_size`` windows."""
    pieces: List[Span] = []
    for start, end in groups:
        while end - start > max_size:
            pieces.append((start, start + max_size))
            start += max_size
        pieces.append((start, end))
    return pieces


def pack_groups(groups: Sequence[Span], min_size: int, max_size: int) -> List[Span]:
    """
    Pack sentence groups into chunk spans bounded by ``min_size``/``max_size``.

    No span is longer than ``max_size``: a group that alone exceeds it, such
    as unpunctuated text, is first cut into fixed windows.
    """
    packed: List[Span] = []
    current: Optional[Span] = None
    for g_start, g_end in split_oversized(groups, max_size):
        if current is not None and g_end - current[0] > max_size:
            packed.append(current)
            current = (g_start, g_end)
        elif current is None:
            current = (g_start, g_end)
        else:
            current = (current[0], g_end)
        if current[1] - current[0] >= min_size:
            packed.append(current)
            current = None
    if current is not None:
        packed.append(current)
    return packed


class SemanticChunker:
    def __init__(
        self,
        embedder: EmbeddingProvider,
        min_chunk_size: int = 200,
        max_chunk_size: int = 1000,
        similarity_threshold: float = 0.7,
        max_concurrency: int = 4,
    ):
        if min_chunk_size <= 0 or max_chunk_size < min_chunk_size:
            raise ValueError(
                f"Invalid semantic chunk sizes: min={min_chunk_size}, max={max_chunk_size}"
            )
        self.embedder = embedder
        self.min_chunk_size = min_chunk_size
        self.max_chunk_size = max_chunk_size
        self.similarity_threshold = similarity_threshold
        self.max_concurrency = max(1, max_concurrency)

    async def _try_embed(self, sentence: str, semaphore: asyncio.Semaphore) -> Outcome[List[float]]:
        async with semaphore:
            try:
                return Outcome.ok(list(await self.embedder.embed(sentence)))
            except Exception as e:
                logger.warning("Failed to embed sentence, using zero vector: %s", e)
                return Outcome.fallback([0.0] * self.embedder.dimension, e)

    async def embed_sentences(self, sentences: Sequence[str]) -> List[List[float]]:
        semaphore = asyncio.Semaphore(self.max_concurrency)
        outcomes = await asyncio.gather(*(self._try_embed(s, semaphore) for s in sentences))
        return [o.value for o in outcomes]

    async def chunk(self, content: str, source_path: Optional[str] = None) -> List[Chunk]:
        spans = sentence_spans(content)
        if not spans:
            return []

        embeddings = await self.embed_sentences([content[s:e] for s, e in spans])
        similarities = [
            _similarity(embeddings[i], embeddings[i + 1]) for i in range(len(embeddings) - 1)
        ]
        groups = boundary_groups(spans, similarities, self.similarity_threshold)
        packed = pack_groups(groups, self.min_chunk_size, self.max_chunk_size)

        chunks = [
            Chunk(text=content[start:end], metadata=make_metadata(start, end, i, source_path))
            for i, (start, end) in enumerate(packed)
        ]
        logger.info(
            "Semantic chunker: %s sentences, %s groups, %s chunks (%s)",
            len(spans),
            len(groups),
            len(chunks),
            os.path.basename(source_path) if source_path else "<text>",
        )
        return chunks
