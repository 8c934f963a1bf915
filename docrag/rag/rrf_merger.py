"""
Reciprocal Rank Fusion (RRF) for combining results from multiple retrievers.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Sequence, Tuple

from .index import Chunk

logger = logging.getLogger(__name__)


def _fuse(
    contributions: Dict[str, List[float]],
    best_rank: Dict[str, int],
    chunks: Dict[str, Chunk],
    top_k: int,
) -> List[Tuple[Chunk, float]]:
    # fsum and the (rank, key) tie-break make the result independent of list order
    scored = [(key, math.fsum(parts)) for key, parts in contributions.items()]
    scored.sort(key=lambda x: (-x[1], best_rank[x[0]], x[0]))
    return [(chunks[key], score) for key, score in scored[:top_k]]


def rrf_merge_scored(
    result_lists: Sequence[Sequence[Chunk]],
    top_k: int = 10,
    k_rrf: int = 60,
) -> List[Tuple[Chunk, float]]:
    """
    Merge ranked chunk lists with Reciprocal Rank Fusion, keeping scores.

    Each chunk at 0-based rank ``r`` of a list contributes ``1 / (k_rrf + r + 1)``;
    contributions of the same chunk (by identity key) across lists are summed.
    """
    contributions: Dict[str, List[float]] = {}
    best_rank: Dict[str, int] = {}
    chunks: Dict[str, Chunk] = {}

    for results in result_lists:
        for rank, chunk in enumerate(results):
            key = chunk.key
            contributions.setdefault(key, []).append(1.0 / (k_rrf + rank + 1))
            chunks.setdefault(key, chunk)
            best_rank[key] = min(rank, best_rank.get(key, rank))

    logger.debug(
        "RRF: fusing %s lists into %s unique chunks (k=%s)",
        len(result_lists),
        len(contributions),
        k_rrf,
    )
    return _fuse(contributions, best_rank, chunks, top_k)


def rrf_merge(
    result_lists: Sequence[Sequence[Chunk]],
    top_k: int = 10,
    k_rrf: int = 60,
) -> List[Chunk]:
    """
    Merge multiple ranked lists using Reciprocal Rank Fusion.

    Args:
        result_lists: Ranked chunk lists from different retrievers, best first.
        top_k: Number of final results to return.
        k_rrf: Constant in 1 / (k_rrf + rank + 1), typically 60.

    Returns:
        Distinct chunks sorted by fused score. A single list is returned
        truncated, as already ranked.
    """
    if not result_lists:
        return []
    if len(result_lists) == 1:
        return list(result_lists[0][:top_k])
    return [chunk for chunk, _ in rrf_merge_scored(result_lists, top_k=top_k, k_rrf=k_rrf)]


def rrf_merge_with_similarities(
    result_lists: Sequence[Sequence[Tuple[Chunk, float]]],
    top_k: int = 10,
    k_rrf: int = 60,
    similarity_weight: float = 0.1,
) -> List[Chunk]:
    """
    RRF variant that also adds each list's own similarity at a small weight.

    Each inner list is ``[(chunk, similarity), ...]`` sorted by similarity desc.
    """
    if not result_lists:
        return []
    if len(result_lists) == 1:
        return [chunk for chunk, _ in result_lists[0][:top_k]]

    contributions: Dict[str, List[float]] = {}
    best_rank: Dict[str, int] = {}
    chunks: Dict[str, Chunk] = {}
    for results in result_lists:
        for rank, (chunk, similarity) in enumerate(results):
            key = chunk.key
            contributions.setdefault(key, []).append(
                1.0 / (k_rrf + rank + 1) + similarity * similarity_weight
            )
            chunks.setdefault(key, chunk)
            best_rank[key] = min(rank, best_rank.get(key, rank))

    return [chunk for chunk, _ in _fuse(contributions, best_rank, chunks, top_k)]
