"""
Shared fixtures for provider-free tests.
"""

from __future__ import annotations

from typing import List

import pytest

from docrag.rag.index import Chunk

from tests.fakes import DEFAULT_VOCAB, WORD_RE, FakeEmbedder, make_chunk


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def sample_chunks() -> List[Chunk]:
    """Three topical chunks, embedded with the default fake vocabulary."""
    texts = [
        "A deadlock is a situation where two or more processes are blocked, each waiting for a resource held by another.",
        "Process scheduling is the mechanism by which the operating system selects which process to run next on the cpu.",
        "The tcp three-way handshake establishes a connection between client and server using SYN and ACK packets.",
    ]
    embedder_vocab = list(DEFAULT_VOCAB)
    chunks = []
    for i, text in enumerate(texts):
        tokens = WORD_RE.findall(text.lower())
        emb = [float(tokens.count(w)) for w in embedder_vocab]
        chunks.append(make_chunk(text, i, embedding=emb))
    return chunks
