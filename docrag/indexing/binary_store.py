"""
Compact binary vector store.

Layout (all integers little-endian)::

    magic        4 bytes  b"RAGB"
    version      uint8    1
    fileCount    uint16
    fileCount x  {pathLen uint16, path utf-8}
    chunkCount   uint32
    indexedAt    {len uint16, ISO-8601 utf-8}
    chunkCount x
        {textLen uint16, text utf-8}
        {dims uint16, float32 x dims}
        startIndex uint32, endIndex uint32, chunkIndex uint32,
        sourceFileIndex uint16 (0xFFFF = none)

Only text, embedding, offsets, chunk index and source path are stored;
enrichment and hierarchy metadata need the JSON store.
"""

from __future__ import annotations

import logging
import os
import struct
from typing import Dict, List, Sequence

import numpy as np

from docrag.rag.index import Chunk, ChunkMetadata

from .vector_store import StoreContents, VectorStore

logger = logging.getLogger(__name__)

MAGIC = b"RAGB"
VERSION = 1
NO_SOURCE = 0xFFFF

U8 = struct.Struct("<B")
U16 = struct.Struct("<H")
U32 = struct.Struct("<I")
CHUNK_TAIL = struct.Struct("<IIIH")

MAX_U16 = 0xFFFF
MAX_U32 = 0xFFFFFFFF


def _check(value: int, limit: int, what: str) -> int:
    if value < 0 or value > limit:
        raise ValueError(f"{what} ({value}) does not fit the binary store format (max {limit})")
    return value


def _pack_str(out: bytearray, text: str, what: str) -> None:
    raw = text.encode("utf-8")
    out += U16.pack(_check(len(raw), MAX_U16, f"{what} byte length"))
    out += raw


def encode_store(chunks: Sequence[Chunk], paths: Sequence[str], indexed_at: str) -> bytes:
    """Serialize a store; raises ValueError if any value overflows its field."""
    # 0xFFFF is reserved for "no source file"
    _check(len(paths), MAX_U16 - 1, "file count")
    file_index: Dict[str, int] = {p: i for i, p in enumerate(paths)}

    out = bytearray(MAGIC)
    out += U8.pack(VERSION)
    out += U16.pack(len(paths))
    for p in paths:
        _pack_str(out, p, "path")
    out += U32.pack(_check(len(chunks), MAX_U32, "chunk count"))
    _pack_str(out, indexed_at, "timestamp")

    for chunk in chunks:
        md = chunk.metadata
        _pack_str(out, chunk.text, "chunk text")
        emb = np.asarray(chunk.embedding, dtype="<f4")
        out += U16.pack(_check(emb.size, MAX_U16, "embedding dimensions"))
        out += emb.tobytes()
        source = md.source_path
        index = file_index.get(source, NO_SOURCE) if source else NO_SOURCE
        if source and index == NO_SOURCE:
            logger.debug("Chunk source %s is not in the file table", source)
        out += CHUNK_TAIL.pack(
            _check(md.start_index, MAX_U32, "startIndex"),
            _check(md.end_index, MAX_U32, "endIndex"),
            _check(md.chunk_index, MAX_U32, "chunkIndex"),
            index,
        )
    return bytes(out)


class _Reader:
    def __init__(self, data: bytes):
        self.data = data
        self.offset = 0

    def take(self, n: int) -> bytes:
        end = self.offset + n
        if end > len(self.data):
            raise ValueError(f"Truncated store: need {n} bytes at offset {self.offset}")
        raw = self.data[self.offset : end]
        self.offset = end
        return raw

    def unpack(self, fmt: struct.Struct) -> tuple:
        return fmt.unpack(self.take(fmt.size))

    def string(self) -> str:
        (n,) = self.unpack(U16)
        return self.take(n).decode("utf-8")


def decode_store(data: bytes) -> StoreContents:
    """Parse a binary store; raises ValueError on bad magic, version or truncation."""
    reader = _Reader(data)
    if reader.take(4) != MAGIC:
        raise ValueError("Bad magic bytes: not a binary vector store")
    (version,) = reader.unpack(U8)
    if version != VERSION:
        raise ValueError(f"Unsupported binary store version {version}")

    (file_count,) = reader.unpack(U16)
    paths = [reader.string() for _ in range(file_count)]
    (chunk_count,) = reader.unpack(U32)
    indexed_at = reader.string()

    chunks: List[Chunk] = []
    for _ in range(chunk_count):
        text = reader.string()
        (dims,) = reader.unpack(U16)
        embedding = np.frombuffer(reader.take(dims * 4), dtype="<f4").tolist()
        start, end, chunk_index, file_idx = reader.unpack(CHUNK_TAIL)
        source = paths[file_idx] if file_idx < len(paths) else None
        chunks.append(
            Chunk(
                text=text,
                embedding=embedding,
                metadata=ChunkMetadata(
                    start_index=start,
                    end_index=end,
                    chunk_index=chunk_index,
                    source_file=os.path.basename(source) if source else None,
                    source_path=source,
                ),
            )
        )
    if reader.offset != len(data):
        raise ValueError(f"{len(data) - reader.offset} trailing bytes after last chunk")
    return chunks, paths, indexed_at


class BinaryVectorStore(VectorStore):
    filename = "vector-store.bin"

    def _encode(self, chunks: Sequence[Chunk], paths: Sequence[str], indexed_at: str) -> bytes:
        return encode_store(chunks, paths, indexed_at)

    def _decode(self, data: bytes) -> StoreContents:
        return decode_store(data)
