"""
Fake embedding and generation providers plus chunk builders shared by the tests.
"""

from __future__ import annotations

import re
from typing import Callable, List, Optional, Sequence

from docrag.rag.index import Chunk, ChunkMetadata

WORD_RE = re.compile(r"\w+")

DEFAULT_VOCAB = (
    "deadlock",
    "process",
    "scheduling",
    "cpu",
    "tcp",
    "handshake",
    "memory",
    "paging",
    "cat",
    "dog",
)


class FakeEmbedder:
    """Counts of vocabulary words; texts without any vocabulary word embed to zeros."""

    def __init__(self, vocab: Sequence[str] = DEFAULT_VOCAB, fail_on: Optional[str] = None):
        self.vocab = list(vocab)
        self.fail_on = fail_on
        self.calls: List[str] = []

    @property
    def dimension(self) -> int:
        return len(self.vocab)

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail_on is not None and self.fail_on in text:
            raise RuntimeError("embedding service unavailable")
        tokens = WORD_RE.findall(text.lower())
        return [float(tokens.count(word)) for word in self.vocab]

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        return [await self.embed(t) for t in texts]


class FakeLLMClient:
    """Records prompts; replies from a responder, a script, or a constant."""

    def __init__(
        self,
        responses: Optional[Sequence[str]] = None,
        responder: Optional[Callable[[str], str]] = None,
        error: Optional[Exception] = None,
    ):
        self.responses = list(responses or [])
        self.responder = responder
        self.error = error
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if self.responder is not None:
            return self.responder(prompt)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        if self.responses:
            return self.responses[0]
        return "ok"


def make_chunk(
    text: str,
    index: int = 0,
    source: Optional[str] = "/docs/doc.md",
    embedding: Optional[Sequence[float]] = None,
    start: Optional[int] = None,
) -> Chunk:
    start = index * 100 if start is None else start
    return Chunk(
        text=text,
        embedding=list(embedding or []),
        metadata=ChunkMetadata(
            start_index=start,
            end_index=start + len(text),
            chunk_index=index,
            source_file=source.rsplit("/", 1)[-1] if source else None,
            source_path=source,
        ),
    )
