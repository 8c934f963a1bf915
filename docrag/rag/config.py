"""
Configuration for RAG retrieval pipeline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

DEFAULT_STORE_DIR = ".rag-store"


@dataclass
class RAGConfig:
    """Configuration for RAG retrieval."""

    top_k: int = 5
    rrf_k: int = 60
    bm25_k1: float = 1.5
    bm25_b: float = 0.75
    use_rrf: bool = True
    semantic_weight: float = 0.7
    keyword_weight: float = 0.3
    first_pass_k: int = 20
    second_pass_k: int = 5
    concept_context_k: int = 10
    max_concepts: int = 5
    query_variations: int = 3
    context_window: int = 2
    rerank_candidates: int = 20
    max_concurrency: int = 4
    store_dir: str = ""

    def __post_init__(self) -> None:
        if not self.store_dir:
            self.store_dir = os.getenv("RAG_STORE_DIR") or DEFAULT_STORE_DIR


class RetrievalMode(str, Enum):
    """Primary retrieval strategy; exactly one is used per query."""

    MULTI_PASS = "multi_pass"
    HYBRID = "hybrid"
    MULTI_QUERY = "multi_query"
    SEMANTIC = "semantic"


class PostStage(str, Enum):
    """Post-processing stages, applied in declaration order."""

    RERANK = "rerank"
    INCLUDE_PARENTS = "include_parents"
    EXPAND_CONTEXT = "expand_context"


@dataclass
class RetrievalOptions:
    """
    Independent per-call flags for indexing and querying.

    ``json`` selects the store encoding: True for the textual store, False for
    the binary one, None to auto-detect when loading (newest store wins) and
    to pick by ``write_json`` when indexing.

    Raises:
        ValueError: if hierarchical chunking is combined with ``json=False``;
            the binary store cannot hold parent/child links.
    """

    json: Optional[bool] = None
    semantic_chunking: bool = False
    hierarchical_chunking: bool = False
    enrich_metadata: bool = False
    expand_queries: bool = False
    rerank: bool = False
    expand_context: bool = False
    multi_pass: bool = False
    hybrid: bool = False

    def __post_init__(self) -> None:
        if self.hierarchical_chunking and self.json is False:
            raise ValueError("hierarchical_chunking needs the JSON store; use json=True or json=None")

    @property
    def write_json(self) -> bool:
        """Encoding used when indexing; the binary layout has no enrichment or hierarchy fields."""
        if self.json is not None:
            return self.json
        return self.hierarchical_chunking or self.enrich_metadata

    @property
    def mode(self) -> RetrievalMode:
        if self.multi_pass:
            return RetrievalMode.MULTI_PASS
        if self.hybrid:
            return RetrievalMode.HYBRID
        if self.expand_queries:
            return RetrievalMode.MULTI_QUERY
        return RetrievalMode.SEMANTIC

    @property
    def post_stages(self) -> List[PostStage]:
        stages: List[PostStage] = []
        # Multi-pass already covers the candidate space broadly
        if self.rerank and self.mode is not RetrievalMode.MULTI_PASS:
            stages.append(PostStage.RERANK)
        if self.hierarchical_chunking:
            stages.append(PostStage.INCLUDE_PARENTS)
        if self.expand_context:
            stages.append(PostStage.EXPAND_CONTEXT)
        return stages
