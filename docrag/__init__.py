"""
docrag: local document indexing and retrieval-augmented question answering.
"""

from .orchestrator import IndexReport, RAGSystem
from .rag.config import RAGConfig, RetrievalOptions

__all__ = ["IndexReport", "RAGSystem", "RAGConfig", "RetrievalOptions"]
