"""
Retrieval evaluation metrics: Precision@K, Recall@K and Mean Reciprocal Rank.

Relevance is judged by chunk identity key, so a dataset written against one
index stays valid as long as chunking parameters are unchanged.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Sequence, Set, Union

from docrag.rag.index import Chunk


@dataclass
class EvalItem:
    query: str
    relevant_chunk_ids: List[str]


@dataclass
class RetrievalMetrics:
    precision_at_k: float = 0.0
    recall_at_k: float = 0.0
    mrr: float = 0.0


def _keys(chunks: Iterable[Chunk]) -> List[str]:
    return [c.key for c in chunks]


def precision_at_k(retrieved: Sequence[Chunk], relevant: Iterable[str], k: int) -> float:
    """Relevant share of the top ``k`` (or fewer, if fewer were retrieved)."""
    if not retrieved or k <= 0:
        return 0.0
    relevant_set: Set[str] = set(relevant)
    top = _keys(retrieved[:k])
    return sum(1 for key in top if key in relevant_set) / len(top)


def recall_at_k(retrieved: Sequence[Chunk], relevant: Iterable[str], k: int) -> float:
    relevant_set: Set[str] = set(relevant)
    if not relevant_set or k <= 0:
        return 0.0
    found = relevant_set.intersection(_keys(retrieved[:k]))
    return len(found) / len(relevant_set)


def reciprocal_rank(retrieved: Sequence[Chunk], relevant: Iterable[str]) -> float:
    relevant_set: Set[str] = set(relevant)
    for rank, key in enumerate(_keys(retrieved), 1):
        if key in relevant_set:
            return 1.0 / rank
    return 0.0


def evaluate(retrieved: Sequence[Chunk], relevant: Iterable[str], k: int = 5) -> RetrievalMetrics:
    relevant = list(relevant)
    return RetrievalMetrics(
        precision_at_k=precision_at_k(retrieved, relevant, k),
        recall_at_k=recall_at_k(retrieved, relevant, k),
        mrr=reciprocal_rank(retrieved, relevant),
    )


def average(metrics: Sequence[RetrievalMetrics]) -> RetrievalMetrics:
    if not metrics:
        return RetrievalMetrics()
    n = len(metrics)
    return RetrievalMetrics(
        precision_at_k=sum(m.precision_at_k for m in metrics) / n,
        recall_at_k=sum(m.recall_at_k for m in metrics) / n,
        mrr=sum(m.mrr for m in metrics) / n,
    )


def load_dataset(path: Union[str, Path]) -> List[EvalItem]:
    """
    Read ``{"queries": [{"query": ..., "relevantChunkIds": [...]}, ...]}``.

    ``relevant_chunk_ids`` is accepted as an alias of ``relevantChunkIds``.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    items: List[EvalItem] = []
    for obj in data.get("queries", []):
        ids = obj.get("relevantChunkIds", obj.get("relevant_chunk_ids", []))
        items.append(EvalItem(query=obj["query"], relevant_chunk_ids=list(ids)))
    return items


async def evaluate_dataset(
    items: Sequence[EvalItem],
    retrieve: Callable[[str, int], Awaitable[Sequence[Chunk]]],
    k: int = 5,
) -> RetrievalMetrics:
    """Average metrics of ``retrieve(query, k)`` over every item."""
    per_query: List[RetrievalMetrics] = []
    for item in items:
        retrieved = await retrieve(item.query, k)
        per_query.append(evaluate(retrieved, item.relevant_chunk_ids, k))
    return average(per_query)
