"""
BM25 keyword retriever over indexed chunks.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from rank_bm25 import BM25Okapi

from .index import Chunk
from .utils import iter_tokens

logger = logging.getLogger(__name__)


class _SmoothedBM25(BM25Okapi):
    """BM25Okapi with the non-negative ``ln((N - n + 0.5) / (n + 0.5) + 1)`` IDF."""

    def _calc_idf(self, nd):
        for word, freq in nd.items():
            self.idf[word] = math.log((self.corpus_size - freq + 0.5) / (freq + 0.5) + 1)


@dataclass
class BM25Index:
    """BM25 keyword index. Immutable once built; rebuild to refresh."""

    bm25: Optional[BM25Okapi]
    chunks: List[Chunk]

    @classmethod
    def from_chunks(
        cls, chunks: Sequence[Chunk], k1: float = 1.5, b: float = 0.75
    ) -> "BM25Index":
        """Build BM25 index from chunks."""
        chunks = list(chunks)
        if not chunks:
            return cls(bm25=None, chunks=chunks)
        tokenized_docs = [list(iter_tokens(c.text)) for c in chunks]
        bm25 = _SmoothedBM25(tokenized_docs, k1=k1, b=b)
        logger.debug(
            "Built BM25 index over %s chunks (avgdl=%.2f)", len(chunks), bm25.avgdl
        )
        return cls(bm25=bm25, chunks=chunks)

    @property
    def document_count(self) -> int:
        return len(self.chunks)

    @property
    def average_document_length(self) -> float:
        return float(self.bm25.avgdl) if self.bm25 is not None else 0.0

    @property
    def document_lengths(self) -> Dict[str, int]:
        if self.bm25 is None:
            return {}
        return {c.key: int(n) for c, n in zip(self.chunks, self.bm25.doc_len)}

    @property
    def term_frequencies(self) -> Dict[str, Dict[str, int]]:
        """term -> chunk key -> frequency."""
        tf: Dict[str, Dict[str, int]] = {}
        if self.bm25 is None:
            return tf
        for chunk, freqs in zip(self.chunks, self.bm25.doc_freqs):
            key = chunk.key
            for term, count in freqs.items():
                tf.setdefault(term, {})[key] = int(count)
        return tf

    def scores(self, query: str) -> List[float]:
        """BM25 score of every chunk for ``query``, in chunk order."""
        if self.bm25 is None:
            return []
        query_tokens = list(iter_tokens(query))
        if not query_tokens or self.bm25.avgdl == 0:
            return [0.0] * len(self.chunks)
        return [float(s) for s in self.bm25.get_scores(query_tokens)]

    def search(self, query: str, top_k: int = 5) -> List[Tuple[Chunk, float]]:
        """
        Top-k chunks by BM25 score.

        Every chunk is scored, so chunks sharing no term with the query fill
        the tail with score 0. A query without tokens matches nothing.
        """
        if self.bm25 is None or not list(iter_tokens(query)):
            return []
        indexed_scores = list(enumerate(self.scores(query)))
        # sort is stable: equal scores keep corpus order
        indexed_scores.sort(key=lambda x: x[1], reverse=True)
        return [(self.chunks[idx], score) for idx, score in indexed_scores[:top_k]]


class KeywordSearcher:
    """
    Lazily (re)built BM25 index over the current chunk collection.

    The index is rebuilt in full whenever it is asked to search a different
    chunk list than the one it was built from. The index and its source list
    are published together as one tuple, so a reader never pairs an index
    with another collection.
    """

    def __init__(self, k1: float = 1.5, b: float = 0.75):
        self.k1 = k1
        self.b = b
        self._state: Optional[Tuple[Sequence[Chunk], BM25Index]] = None
        self._lock = threading.Lock()

    def build_index(self, chunks: Sequence[Chunk]) -> BM25Index:
        """Build and publish the index for ``chunks``, replacing any previous one."""
        index = BM25Index.from_chunks(chunks, k1=self.k1, b=self.b)
        with self._lock:
            self._state = (chunks, index)
        return index

    def _current(self, chunks: Sequence[Chunk]) -> BM25Index:
        state = self._state
        if state is not None and state[0] is chunks:
            return state[1]
        with self._lock:
            state = self._state
            if state is not None and state[0] is chunks:
                return state[1]
            index = BM25Index.from_chunks(chunks, k1=self.k1, b=self.b)
            self._state = (chunks, index)
        return index

    def search(
        self, query: str, chunks: Sequence[Chunk], top_k: int = 5
    ) -> List[Tuple[Chunk, float]]:
        return self._current(chunks).search(query, top_k=top_k)
