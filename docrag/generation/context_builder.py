"""
Context builder for RAG answer generation.

Formats retrieved chunks into numbered context blocks, each prefixed with its
source file when known, so the model can refer back to where text came from.
"""

from __future__ import annotations

from typing import List, Sequence

from docrag.rag.index import Chunk


def _approx_tokens(text: str) -> int:
    """Rough token count (~4 chars per token for English)."""
    return max(1, len(text) // 4)


def format_block(i: int, chunk: Chunk, include_source: bool = True) -> str:
    source = chunk.metadata.source_file if include_source else None
    header = f"[Context {i}]"
    if source:
        header += f"\n[Source: {source}]"
    return f"{header}\n{chunk.text}"


def build_context(
    chunks: Sequence[Chunk],
    max_tokens: int = 4000,
    include_sources: bool = True,
) -> str:
    """
    Join chunks into one context string of ``[Context n]`` blocks.

    Args:
        chunks: Retrieved chunks (order preserved; index + 1 = block number).
        max_tokens: Approximate token budget; trailing chunks are truncated or dropped to fit.
        include_sources: Prefix each block with ``[Source: file]`` when known.

    Returns:
        Blocks separated by blank lines; empty string for no chunks.
    """
    if not chunks:
        return ""

    parts: List[str] = []
    used = 0

    for i, chunk in enumerate(chunks, 1):
        segment = format_block(i, chunk, include_sources)
        seg_tokens = _approx_tokens(segment)

        if used + seg_tokens > max_tokens and parts:
            remaining = max_tokens - used - 80
            if remaining > 100:
                parts.append(segment[: remaining * 4] + "...")
            break

        parts.append(segment)
        used += seg_tokens

    return "\n\n".join(parts)
