"""
Dense embedding provider using sentence-transformers.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import List, Optional, Sequence

import numpy as np
from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)

EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "all-MiniLM-L6-v2")


class SentenceTransformerEmbedder:
    """Runs a sentence-transformers model off the event loop."""

    def __init__(
        self,
        model_name: Optional[str] = None,
        batch_size: int = 64,
        show_progress_bar: bool = False,
    ):
        self.model_name = model_name or EMBEDDING_MODEL
        self.batch_size = batch_size
        self.show_progress_bar = show_progress_bar
        logger.info("Loading embedding model %s", self.model_name)
        self.model = SentenceTransformer(self.model_name)
        self._dimension = int(self.model.get_sentence_embedding_dimension() or 0)

    @property
    def dimension(self) -> int:
        return self._dimension

    def _encode(self, texts: Sequence[str]) -> np.ndarray:
        return self.model.encode(
            list(texts),
            batch_size=self.batch_size,
            show_progress_bar=self.show_progress_bar,
            convert_to_numpy=True,
            normalize_embeddings=True,
        )

    async def embed(self, text: str) -> List[float]:
        emb = await asyncio.to_thread(self._encode, [text])
        return emb[0].astype(np.float32).tolist()

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        emb = await asyncio.to_thread(self._encode, texts)
        return [row.astype(np.float32).tolist() for row in emb]
