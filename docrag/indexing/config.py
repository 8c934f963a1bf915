"""
Configuration for document chunking.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ChunkingConfig:
    """Sizes are in characters."""

    chunk_size: int = 500
    overlap: int = 50
    # semantic
    min_chunk_size: int = 200
    max_chunk_size: int = 1000
    similarity_threshold: float = 0.7
    # hierarchical
    child_chunk_size: int = 250
    child_overlap: int = 30
    parent_chunk_size: int = 1200
    parent_overlap: int = 100
    max_concurrency: int = 4
