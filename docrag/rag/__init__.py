"""
RAG (Retrieval-Augmented Generation) module.

Provides retrieval components over indexed document chunks:
- BM25 keyword retrieval
- Dense semantic retrieval
- Hybrid search with RRF or weighted fusion
- Query expansion and multi-pass retrieval
- LLM reranking, parent inclusion and context expansion
"""

from .bm25 import BM25Index, KeywordSearcher
from .config import PostStage, RAGConfig, RetrievalMode, RetrievalOptions
from .context_window import ContextExpander
from .dense import DenseSearcher
from .fallback import Outcome
from .hierarchy import include_parents
from .hybrid import HybridSearcher, weighted_merge
from .index import Chunk, ChunkMetadata, chunk_key
from .multi_pass import MultiPassRetriever
from .query_expansion import QueryExpander
from .reranker import LLMReranker
from .retriever import MultiQueryRetriever, Retriever, SemanticRetriever
from .rrf_merger import rrf_merge, rrf_merge_scored, rrf_merge_with_similarities

__all__ = [
    "Chunk",
    "ChunkMetadata",
    "chunk_key",
    "BM25Index",
    "KeywordSearcher",
    "DenseSearcher",
    "HybridSearcher",
    "weighted_merge",
    "MultiPassRetriever",
    "MultiQueryRetriever",
    "SemanticRetriever",
    "Retriever",
    "RAGConfig",
    "RetrievalOptions",
    "RetrievalMode",
    "PostStage",
    "QueryExpander",
    "LLMReranker",
    "ContextExpander",
    "include_parents",
    "Outcome",
    "rrf_merge",
    "rrf_merge_scored",
    "rrf_merge_with_similarities",
]
