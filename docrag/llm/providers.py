"""
Interfaces for the external embedding and text-generation services.

Both are treated as fallible, latent and possibly absent.
"""

from __future__ import annotations

from typing import List, Protocol, Sequence, runtime_checkable

import numpy as np


@runtime_checkable
class GenerationProvider(Protocol):
    """Anything that turns a prompt into text."""

    async def generate(self, prompt: str) -> str:
        ...


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Anything that turns text into a fixed-length float vector."""

    @property
    def dimension(self) -> int:
        ...

    async def embed(self, text: str) -> List[float]:
        ...

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        ...


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 when either has zero norm."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"Vectors must have the same length ({va.size} != {vb.size})")
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)
