"""
Core chunk model shared by indexing and retrieval.

A chunk is a contiguous span of a source document plus its embedding and
metadata. Hierarchy links (parent/child) are stored as identity-key strings
over the flat chunk collection rather than object references.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Dict, Iterable, List, Optional


# (python attribute, wire key) for the textual store format
_METADATA_FIELDS = (
    ("start_index", "startIndex"),
    ("end_index", "endIndex"),
    ("chunk_index", "chunkIndex"),
    ("source_file", "sourceFile"),
    ("source_path", "sourcePath"),
    ("document_type", "documentType"),
    ("section", "section"),
    ("abstraction_level", "abstractionLevel"),
    ("keywords", "keywords"),
    ("topics", "topics"),
    ("timestamp", "timestamp"),
    ("parent_id", "parentId"),
    ("child_ids", "childIds"),
    ("is_parent", "isParent"),
    ("is_child", "isChild"),
)


@dataclasses.dataclass
class ChunkMetadata:
    """Position, origin and optional enrichment/hierarchy fields of a chunk."""

    start_index: int
    end_index: int
    chunk_index: int
    source_file: Optional[str] = None
    source_path: Optional[str] = None
    document_type: Optional[str] = None
    section: Optional[str] = None
    abstraction_level: Optional[str] = None
    keywords: Optional[List[str]] = None
    topics: Optional[List[str]] = None
    timestamp: Optional[str] = None
    parent_id: Optional[str] = None
    child_ids: Optional[List[str]] = None
    is_parent: Optional[bool] = None
    is_child: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, omitting unset optional fields."""
        out: Dict[str, Any] = {}
        for attr, key in _METADATA_FIELDS:
            value = getattr(self, attr)
            if value is None:
                continue
            out[key] = list(value) if isinstance(value, list) else value
        return out

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "ChunkMetadata":
        kwargs: Dict[str, Any] = {}
        for attr, key in _METADATA_FIELDS:
            if key in obj and obj[key] is not None:
                kwargs[attr] = obj[key]
        kwargs.setdefault("start_index", 0)
        kwargs.setdefault("end_index", 0)
        kwargs.setdefault("chunk_index", 0)
        for attr in ("keywords", "topics", "child_ids"):
            if attr in kwargs:
                kwargs[attr] = list(kwargs[attr])
        return cls(**kwargs)


@dataclasses.dataclass
class Chunk:
    """A span of text, its embedding vector and metadata."""

    text: str
    metadata: ChunkMetadata
    embedding: List[float] = dataclasses.field(default_factory=list)

    @property
    def key(self) -> str:
        return chunk_key(self)

    @property
    def is_parent(self) -> bool:
        return bool(self.metadata.is_parent)

    @property
    def is_child(self) -> bool:
        return bool(self.metadata.is_child)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "embedding": [float(x) for x in self.embedding],
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "Chunk":
        return cls(
            text=obj["text"],
            embedding=[float(x) for x in obj.get("embedding", [])],
            metadata=ChunkMetadata.from_dict(obj.get("metadata", {})),
        )


def chunk_key(chunk: Chunk) -> str:
    """Deterministic identity key: source path, chunk index and offsets."""
    md = chunk.metadata
    return f"{md.source_path or ''}_{md.chunk_index}_{md.start_index}_{md.end_index}"


def with_embedding(chunk: Chunk, embedding: Iterable[float]) -> Chunk:
    """Return a copy of ``chunk`` carrying ``embedding``."""
    return dataclasses.replace(chunk, embedding=[float(x) for x in embedding])


def build_key_index(chunks: Iterable[Chunk]) -> Dict[str, Chunk]:
    """Map identity key -> chunk (first occurrence wins)."""
    index: Dict[str, Chunk] = {}
    for ch in chunks:
        index.setdefault(ch.key, ch)
    return index


def dedupe_chunks(chunks: Iterable[Chunk]) -> List[Chunk]:
    """Drop repeated chunks by identity key, keeping first-seen order."""
    return list(build_key_index(chunks).values())
