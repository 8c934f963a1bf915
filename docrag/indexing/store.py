"""
Store selection: explicit encoding at write time, auto-detection when loading.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from .binary_store import BinaryVectorStore
from .json_store import JsonVectorStore
from .vector_store import VectorStore

logger = logging.getLogger(__name__)

STORE_CLASSES = (BinaryVectorStore, JsonVectorStore)


def create_vector_store(store_dir: Union[str, Path], use_json: bool = False) -> VectorStore:
    """Store of the requested encoding inside ``store_dir``."""
    cls = JsonVectorStore if use_json else BinaryVectorStore
    return cls(Path(store_dir) / cls.filename)


def remove_other_encodings(store: VectorStore) -> None:
    """Delete the other encoding's file next to ``store`` so it cannot shadow it."""
    for cls in STORE_CLASSES:
        other = store.path.with_name(cls.filename)
        if other != store.path and other.is_file():
            other.unlink()
            logger.info("Removed superseded store %s", other)


def detect_vector_store(
    store_dir: Union[str, Path], use_json: Optional[bool] = None
) -> Optional[VectorStore]:
    """
    Loaded store from ``store_dir``, or None if nothing loadable is there.

    With ``use_json=None`` both encodings are tried and the most recently
    written one wins; the binary store is kept on a tie.
    """
    if use_json is not None:
        candidates = [create_vector_store(store_dir, use_json)]
    else:
        candidates = [create_vector_store(store_dir, False), create_vector_store(store_dir, True)]
    loaded = [store for store in candidates if store.load()]
    if not loaded:
        return None
    store = max(loaded, key=lambda s: s.indexed_at or "")
    if len(loaded) > 1:
        logger.warning("Both store encodings found in %s; using newer %s", store_dir, store.path)
    logger.debug("Using %s", store.path)
    return store
