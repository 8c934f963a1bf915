"""
File-backed vector store shared by the JSON and binary encodings.

A store owns the authoritative chunk collection plus the list of source paths
it was built from and the time it was written. Subclasses only encode and
decode; loading, saving and the identity checks live here.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from docrag.rag.index import Chunk

logger = logging.getLogger(__name__)

DocumentPath = Union[str, Sequence[str]]
StoreContents = Tuple[List[Chunk], List[str], str]


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with milliseconds and a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def unique_paths(document_path: DocumentPath) -> List[str]:
    paths = [document_path] if isinstance(document_path, str) else list(document_path)
    return list(dict.fromkeys(paths))


class VectorStore:
    """Base class; subclasses implement ``_encode`` and ``_decode``."""

    filename = "vector-store"

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._chunks: Optional[List[Chunk]] = None
        self._paths: List[str] = []
        self._indexed_at: Optional[str] = None

    def _encode(self, chunks: Sequence[Chunk], paths: Sequence[str], indexed_at: str) -> bytes:
        raise NotImplementedError

    def _decode(self, data: bytes) -> StoreContents:
        raise NotImplementedError

    @property
    def loaded(self) -> bool:
        return self._chunks is not None

    @property
    def indexed_at(self) -> Optional[str]:
        return self._indexed_at

    def load(self) -> bool:
        """Read the store from disk; False (never an exception) if absent or corrupt."""
        if not self.path.is_file():
            logger.debug("No existing store found at %s", self.path)
            return False
        try:
            chunks, paths, indexed_at = self._decode(self.path.read_bytes())
        except Exception as e:
            logger.error("Error loading store %s: %s", self.path, e)
            return False
        self._chunks, self._paths, self._indexed_at = chunks, paths, indexed_at
        logger.info("Loaded %s chunks from %s", len(chunks), self.path)
        return True

    def save(self, chunks: Sequence[Chunk], document_path: DocumentPath) -> None:
        """Overwrite the store with ``chunks`` built from ``document_path``."""
        paths = unique_paths(document_path)
        indexed_at = utc_now_iso()
        data = self._encode(chunks, paths, indexed_at)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_bytes(data)
        os.replace(tmp, self.path)

        self._chunks, self._paths, self._indexed_at = list(chunks), paths, indexed_at
        logger.info(
            "Saved %s chunks from %s file(s) to %s", len(chunks), len(paths), self.path
        )

    def get_chunks(self) -> List[Chunk]:
        if self._chunks is None:
            raise RuntimeError("Store not loaded. Call load() first.")
        return self._chunks

    def get_document_path(self) -> Optional[DocumentPath]:
        """The single source path, the list of paths, or None if not loaded."""
        if self._chunks is None:
            return None
        if len(self._paths) == 1:
            return self._paths[0]
        return list(self._paths)

    def get_document_paths(self) -> List[str]:
        return list(self._paths)

    def exists_for_document(self, document_path: DocumentPath) -> bool:
        """
        True if every given path is recorded in the store.

        Only path identity is compared; edited files are not detected.
        """
        if not self.path.is_file():
            return False
        if self._chunks is None and not self.load():
            return False
        stored = set(self._paths)
        return all(p in stored for p in unique_paths(document_path))
