"""
Indexing pipeline: file collection, chunking, enrichment and persistence.
"""

from .binary_store import BinaryVectorStore, decode_store, encode_store
from .chunker import chunk_text
from .config import ChunkingConfig
from .file_collector import FileCollector, FileInfo
from .hierarchical_chunker import hierarchical_chunk
from .json_store import JsonVectorStore
from .metadata_extractor import MetadataExtractor
from .semantic_chunker import SemanticChunker
from .store import create_vector_store, detect_vector_store, remove_other_encodings
from .vector_store import VectorStore

__all__ = [
    "ChunkingConfig",
    "chunk_text",
    "SemanticChunker",
    "hierarchical_chunk",
    "MetadataExtractor",
    "FileCollector",
    "FileInfo",
    "VectorStore",
    "JsonVectorStore",
    "BinaryVectorStore",
    "encode_store",
    "decode_store",
    "create_vector_store",
    "detect_vector_store",
    "remove_other_encodings",
]
