"""
Parent/child resolution over the flat chunk collection.

Hierarchy links are identity keys; these helpers resolve them through a key index.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from .index import Chunk, build_key_index, dedupe_chunks


def searchable_chunks(chunks: Sequence[Chunk]) -> List[Chunk]:
    """Chunks eligible for ranking when parents are added afterwards (no parents)."""
    return [c for c in chunks if not c.is_parent]


def parent_of(chunk: Chunk, by_key: Dict[str, Chunk]) -> Chunk | None:
    parent_id = chunk.metadata.parent_id
    if not parent_id:
        return None
    return by_key.get(parent_id)


def include_parents(results: Sequence[Chunk], all_chunks: Sequence[Chunk]) -> List[Chunk]:
    """
    Append the parent of every retrieved child after the results.

    Retrieved chunks keep their order; parents follow in first-reference
    order, and nothing appears twice.
    """
    by_key = build_key_index(all_chunks)
    parents: List[Chunk] = []
    for chunk in results:
        parent = parent_of(chunk, by_key)
        if parent is not None:
            parents.append(parent)
    return dedupe_chunks(list(results) + parents)
