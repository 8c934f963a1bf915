"""
Orchestrator: indexing, retrieval strategy selection and answer generation flow.
"""

from .rag_system import IndexReport, RAGSystem

__all__ = [
    "IndexReport",
    "RAGSystem",
]
