"""
Fixed-size sliding-window chunker.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional

from docrag.rag.index import Chunk, ChunkMetadata

logger = logging.getLogger(__name__)


def validate_window(chunk_size: int, overlap: int) -> None:
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0:
        raise ValueError(f"overlap must be non-negative, got {overlap}")
    if overlap >= chunk_size:
        raise ValueError(f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size})")


def make_metadata(
    start: int, end: int, chunk_index: int, source_path: Optional[str] = None
) -> ChunkMetadata:
    return ChunkMetadata(
        start_index=start,
        end_index=end,
        chunk_index=chunk_index,
        source_file=os.path.basename(source_path) if source_path else None,
        source_path=source_path,
    )


def chunk_text(
    text: str,
    chunk_size: int = 500,
    overlap: int = 50,
    source_path: Optional[str] = None,
    first_index: int = 0,
) -> List[Chunk]:
    """
    Split ``text`` into overlapping windows of ``chunk_size`` characters.

    Each window advances by ``chunk_size - overlap``. Offsets are those of the
    window; the chunk text is the window stripped of surrounding whitespace,
    and all-whitespace windows are skipped. ``chunk_index`` counts emitted
    chunks starting at ``first_index``.

    Raises:
        ValueError: if ``overlap >= chunk_size`` or either is out of range.
    """
    validate_window(chunk_size, overlap)

    chunks: List[Chunk] = []
    length = len(text)
    start = 0
    while start < length:
        end = min(start + chunk_size, length)
        content = text[start:end].strip()
        if content:
            index = first_index + len(chunks)
            chunks.append(Chunk(text=content, metadata=make_metadata(start, end, index, source_path)))
        if end >= length:
            break
        next_start = end - overlap
        # always make forward progress
        if not content or next_start <= start:
            next_start = end
        start = next_start

    logger.debug("Fixed chunker: %s chunks from %s chars (%s)", len(chunks), length, source_path)
    return chunks
