"""
Textual (JSON) vector store: the whole store as one inspectable document.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence

from docrag.rag.index import Chunk

from .vector_store import StoreContents, VectorStore


class JsonVectorStore(VectorStore):
    filename = "vector-store.json"

    def _encode(self, chunks: Sequence[Chunk], paths: Sequence[str], indexed_at: str) -> bytes:
        document: Dict[str, Any] = {
            "chunks": [c.to_dict() for c in chunks],
            "documentPath": paths[0] if len(paths) == 1 else list(paths),
            "indexedAt": indexed_at,
            "fileCount": len(paths),
            "totalChunks": len(chunks),
        }
        return json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")

    def _decode(self, data: bytes) -> StoreContents:
        document = json.loads(data.decode("utf-8"))
        if not isinstance(document, dict) or not isinstance(document.get("chunks"), list):
            raise ValueError("Not a vector store document: missing 'chunks' array")
        raw_path = document.get("documentPath")
        if raw_path is None:
            paths: List[str] = []
        elif isinstance(raw_path, str):
            paths = [raw_path]
        else:
            paths = [str(p) for p in raw_path]
        chunks = [Chunk.from_dict(obj) for obj in document["chunks"]]
        return chunks, paths, str(document.get("indexedAt", ""))
