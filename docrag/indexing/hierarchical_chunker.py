"""
Hierarchical chunker producing small child chunks grouped under larger parents.

Children are fixed-size windows used for precise matching; parents span runs of
consecutive children and are added to results for surrounding context. Links
are identity keys: each parent lists its ``child_ids`` and each child names its
``parent_id``.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional, Tuple

from docrag.rag.index import Chunk

from .chunker import chunk_text, make_metadata, validate_window

logger = logging.getLogger(__name__)


def _group_children(
    children: List[Chunk], parent_size: int, parent_overlap: int
) -> List[Tuple[int, int, List[int]]]:
    """(start, end, child positions) per parent."""
    groups: List[Tuple[int, int, List[int]]] = []
    members: List[int] = []
    start = 0
    end = 0
    for i, child in enumerate(children):
        md = child.metadata
        if members and md.end_index - start > parent_size:
            groups.append((start, end, members))
            start = max(0, min(md.start_index, end - parent_overlap))
            members = []
        elif not members:
            start = md.start_index
        members.append(i)
        end = md.end_index
    if members:
        groups.append((start, end, members))
    return groups


def hierarchical_chunk(
    text: str,
    child_chunk_size: int = 250,
    child_overlap: int = 30,
    parent_chunk_size: int = 1200,
    parent_overlap: int = 100,
    source_path: Optional[str] = None,
) -> List[Chunk]:
    """
    Chunk ``text`` into linked children and parents.

    Returns all children (in document order) followed by all parents. Parent
    ``chunk_index`` values continue after the last child so keys never collide.
    """
    validate_window(parent_chunk_size, parent_overlap)
    if parent_chunk_size < child_chunk_size:
        raise ValueError(
            f"parent_chunk_size ({parent_chunk_size}) must be at least "
            f"child_chunk_size ({child_chunk_size})"
        )

    children = chunk_text(text, child_chunk_size, child_overlap, source_path=source_path)
    groups = _group_children(children, parent_chunk_size, parent_overlap)

    parents: List[Chunk] = []
    for p, (start, end, members) in enumerate(groups):
        md = make_metadata(start, end, len(children) + p, source_path)
        md.is_parent = True
        parents.append(Chunk(text=text[start:end].strip(), metadata=md))

    linked_children = list(children)
    linked_parents: List[Chunk] = []
    for parent, (_start, _end, members) in zip(parents, groups):
        parent_key = parent.key
        child_keys = []
        for i in members:
            child = linked_children[i]
            child_keys.append(child.key)
            linked_children[i] = dataclasses.replace(
                child,
                metadata=dataclasses.replace(child.metadata, parent_id=parent_key, is_child=True),
            )
        linked_parents.append(
            dataclasses.replace(
                parent, metadata=dataclasses.replace(parent.metadata, child_ids=child_keys)
            )
        )

    logger.debug(
        "Hierarchical chunker: %s children under %s parents (%s)",
        len(linked_children),
        len(linked_parents),
        source_path,
    )
    return linked_children + linked_parents
