"""
Helpers for expanding retrieved chunks with surrounding sentences of their source document.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .fallback import Outcome
from .index import Chunk
from .utils import sentence_spans

logger = logging.getLogger(__name__)


def _read_document(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def expand_span(
    content: str, start: int, end: int, window: int
) -> Optional[Tuple[int, int]]:
    """
    Widen ``[start, end)`` to whole sentences plus ``window`` sentences each side.

    Returns None when no sentence of ``content`` overlaps the range.
    """
    spans = sentence_spans(content)
    hits = [i for i, (s, e) in enumerate(spans) if s < end and start < e]
    if not hits:
        return None
    first = max(0, hits[0] - window)
    last = min(len(spans) - 1, hits[-1] + window)
    return spans[first][0], spans[last][1]


class ContextExpander:
    """Sentence-window expansion (±``window`` sentences) of retrieved chunks."""

    def __init__(self, window: int = 2):
        self.window = max(0, window)

    def _expand_in(self, chunk: Chunk, content: str) -> Chunk:
        md = chunk.metadata
        span = expand_span(content, md.start_index, md.end_index, self.window)
        if span is None:
            raise ValueError(
                f"No sentence overlaps [{md.start_index}, {md.end_index}) of {md.source_path}"
            )
        new_start, new_end = span
        return dataclasses.replace(
            chunk,
            text=content[new_start:new_end],
            metadata=dataclasses.replace(md, start_index=new_start, end_index=new_end),
        )

    async def try_expand(
        self, chunk: Chunk, documents: Optional[Dict[str, str]] = None
    ) -> Outcome[Chunk]:
        source = chunk.metadata.source_path
        if not source or not Path(source).is_file():
            return Outcome.ok(chunk)
        try:
            if documents is not None and source in documents:
                content = documents[source]
            else:
                content = await asyncio.to_thread(_read_document, source)
                if documents is not None:
                    documents[source] = content
            return Outcome.ok(self._expand_in(chunk, content))
        except Exception as e:
            logger.warning("Failed to expand chunk from %s, using original: %s", source, e)
            return Outcome.fallback(chunk, e)

    async def expand_chunk(self, chunk: Chunk) -> Chunk:
        """A new, widened chunk; the original when its source is unavailable."""
        return (await self.try_expand(chunk)).value

    async def expand_chunks(self, chunks: Sequence[Chunk]) -> List[Chunk]:
        """Expand each chunk, reading every source document once per batch."""
        documents: Dict[str, str] = {}
        expanded: List[Chunk] = []
        for chunk in chunks:
            expanded.append((await self.try_expand(chunk, documents)).value)
        return expanded
