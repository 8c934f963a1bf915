"""
RAG system: indexing of source files and query-time retrieval strategy selection,
post-processing and answer generation.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from docrag.generation import (
    NO_CONTEXT_ANSWER,
    AnswerGenerator,
    GeneratedAnswer,
    GenerationConfig,
)
from docrag.indexing import (
    ChunkingConfig,
    FileCollector,
    MetadataExtractor,
    SemanticChunker,
    VectorStore,
    chunk_text,
    create_vector_store,
    detect_vector_store,
    hierarchical_chunk,
    remove_other_encodings,
)
from docrag.llm.client import create_client
from docrag.llm.providers import EmbeddingProvider, GenerationProvider
from docrag.rag.bm25 import KeywordSearcher
from docrag.rag.config import PostStage, RAGConfig, RetrievalMode, RetrievalOptions
from docrag.rag.context_window import ContextExpander
from docrag.rag.dense import DenseSearcher
from docrag.rag.hierarchy import include_parents, searchable_chunks
from docrag.rag.hybrid import HybridSearcher
from docrag.rag.index import Chunk, with_embedding
from docrag.rag.multi_pass import MultiPassRetriever
from docrag.rag.query_expansion import QueryExpander
from docrag.rag.reranker import LLMReranker
from docrag.rag.retriever import MultiQueryRetriever, Retriever, SemanticRetriever

logger = logging.getLogger(__name__)


def _default_embedder() -> EmbeddingProvider:
    from docrag.llm.embeddings import SentenceTransformerEmbedder

    return SentenceTransformerEmbedder()


def _read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


@dataclass
class IndexReport:
    """Outcome of an indexing run."""

    files: List[str]
    chunk_count: int
    store_path: str
    skipped: bool = False
    per_file: dict = field(default_factory=dict)


class RAGSystem:
    """Index documents and answer questions over them."""

    def __init__(
        self,
        embedder: Optional[EmbeddingProvider] = None,
        llm: Optional[GenerationProvider] = None,
        config: Optional[RAGConfig] = None,
        chunking: Optional[ChunkingConfig] = None,
        generation: Optional[GenerationConfig] = None,
        store_dir: Optional[Union[str, Path]] = None,
        collector: Optional[FileCollector] = None,
    ):
        self.config = config or RAGConfig()
        self.chunking = chunking or ChunkingConfig()
        self.generation = generation or GenerationConfig()
        self.store_dir = Path(store_dir or self.config.store_dir)
        self.collector = collector or FileCollector()
        self._embedder = embedder
        self._llm = llm
        self._store: Optional[VectorStore] = None
        self._pool_source: Optional[List[Chunk]] = None
        self._pool: List[Chunk] = []
        self._dense: Optional[DenseSearcher] = None
        self._keyword = KeywordSearcher(k1=self.config.bm25_k1, b=self.config.bm25_b)

    # providers are created on first use so tests and indexing-only runs stay light
    @property
    def embedder(self) -> EmbeddingProvider:
        if self._embedder is None:
            self._embedder = _default_embedder()
        return self._embedder

    @property
    def llm(self) -> GenerationProvider:
        if self._llm is None:
            self._llm = create_client()
        return self._llm

    @property
    def dense(self) -> DenseSearcher:
        if self._dense is None:
            self._dense = DenseSearcher(self.embedder)
        return self._dense

    # ------------------------------------------------------------------ indexing

    async def _chunk_file(self, path: str, content: str, options: RetrievalOptions) -> List[Chunk]:
        cfg = self.chunking
        if options.hierarchical_chunking:
            return hierarchical_chunk(
                content,
                child_chunk_size=cfg.child_chunk_size,
                child_overlap=cfg.child_overlap,
                parent_chunk_size=cfg.parent_chunk_size,
                parent_overlap=cfg.parent_overlap,
                source_path=path,
            )
        if options.semantic_chunking:
            chunker = SemanticChunker(
                self.embedder,
                min_chunk_size=cfg.min_chunk_size,
                max_chunk_size=cfg.max_chunk_size,
                similarity_threshold=cfg.similarity_threshold,
                max_concurrency=cfg.max_concurrency,
            )
            return await chunker.chunk(content, source_path=path)
        return chunk_text(content, cfg.chunk_size, cfg.overlap, source_path=path)

    async def _build_chunks(self, path: str, options: RetrievalOptions) -> List[Chunk]:
        content = await asyncio.to_thread(_read_text, path)
        chunks = await self._chunk_file(path, content, options)
        if not chunks:
            logger.warning("No chunks produced for %s", path)
            return []
        if options.enrich_metadata:
            extractor = MetadataExtractor(self.llm, max_concurrency=self.config.max_concurrency)
            chunks = await extractor.enrich_chunks(chunks, content)
        embeddings = await self.embedder.embed_batch([c.text for c in chunks])
        if len(embeddings) != len(chunks):
            raise RuntimeError(
                f"Embedding provider returned {len(embeddings)} vectors for {len(chunks)} chunks"
            )
        logger.info("Indexed %s chunks from %s", len(chunks), path)
        return [with_embedding(c, e) for c, e in zip(chunks, embeddings)]

    async def index(
        self, paths: Union[str, Sequence[str]], options: Optional[RetrievalOptions] = None
    ) -> IndexReport:
        """
        Chunk, embed and persist every supported file under ``paths``.

        Returns early without re-chunking when the store already records all
        the collected files.

        Raises:
            FileNotFoundError: if a path does not exist.
            ValueError: if no supported files are found.
        """
        options = options or RetrievalOptions()
        path_list = [paths] if isinstance(paths, str) else list(paths)
        files = [f.path for f in self.collector.collect_all(path_list)]
        if not files:
            raise ValueError(f"No supported files found in: {', '.join(path_list)}")
        if options.enrich_metadata and not options.write_json:
            logger.warning("Binary store keeps no enrichment metadata; pass json=True to persist it")

        store = create_vector_store(self.store_dir, use_json=options.write_json)
        if store.exists_for_document(files):
            logger.info("All %s files already indexed in %s", len(files), store.path)
            self._set_store(store)
            return IndexReport(
                files=files,
                chunk_count=len(store.get_chunks()),
                store_path=str(store.path),
                skipped=True,
            )

        chunks: List[Chunk] = []
        per_file = {}
        for path in files:
            file_chunks = await self._build_chunks(path, options)
            per_file[path] = len(file_chunks)
            chunks.extend(file_chunks)

        self._save(store, chunks, files)
        return IndexReport(
            files=files, chunk_count=len(chunks), store_path=str(store.path), per_file=per_file
        )

    async def reindex_file(self, path: str, options: Optional[RetrievalOptions] = None) -> IndexReport:
        """
        Replace one file's chunks in the existing store.

        Other files' chunks are kept. A file that no longer exists is removed
        from the store. Without an existing store this is a plain ``index``.
        """
        options = options or RetrievalOptions()
        store = detect_vector_store(self.store_dir, options.json)
        if store is None:
            return await self.index([path], options)

        target = str(Path(path).resolve())
        kept = [c for c in store.get_chunks() if c.metadata.source_path != target]
        paths = [p for p in store.get_document_paths() if p != target]

        new_chunks: List[Chunk] = []
        if Path(target).is_file():
            new_chunks = await self._build_chunks(target, options)
            paths.append(target)
        else:
            logger.info("%s no longer exists; dropping it from the index", target)

        self._save(store, kept + new_chunks, paths)
        return IndexReport(
            files=paths,
            chunk_count=len(kept) + len(new_chunks),
            store_path=str(store.path),
            per_file={target: len(new_chunks)},
        )

    def _save(self, store: VectorStore, chunks: List[Chunk], paths: List[str]) -> None:
        store.save(chunks, paths)
        # one encoding per store directory
        remove_other_encodings(store)
        self._set_store(store)

    # ------------------------------------------------------------------ querying

    def _set_store(self, store: VectorStore) -> None:
        self._store = store
        self._pool_source = None

    @property
    def keyword(self) -> KeywordSearcher:
        return self._keyword

    def load_chunks(self, options: Optional[RetrievalOptions] = None) -> List[Chunk]:
        """Every chunk of the current store, loading it on first use."""
        return self._load_store(options or RetrievalOptions()).get_chunks()

    def _load_store(self, options: RetrievalOptions) -> VectorStore:
        store = self._store
        if store is not None and store.loaded:
            if options.json is None or store.path.suffix == (".json" if options.json else ".bin"):
                return store
        store = detect_vector_store(self.store_dir, options.json)
        if store is None:
            raise RuntimeError(f"No index found in {self.store_dir}. Run index() first.")
        self._set_store(store)
        return store

    def _search_pool(self, chunks: List[Chunk], exclude_parents: bool) -> List[Chunk]:
        if not exclude_parents:
            return chunks
        # same list object across queries keeps the search caches warm
        if self._pool_source is not chunks:
            self._pool = searchable_chunks(chunks)
            self._pool_source = chunks
        return self._pool

    def _retriever(self, mode: RetrievalMode) -> Retriever:
        if mode is RetrievalMode.MULTI_PASS:
            return MultiPassRetriever(self.dense, self.llm, self.config)
        if mode is RetrievalMode.HYBRID:
            return HybridSearcher(self.dense, self._keyword, self.config)
        if mode is RetrievalMode.MULTI_QUERY:
            expander = QueryExpander(self.llm, self.config.query_variations)
            return MultiQueryRetriever(self.dense, expander, self.config)
        return SemanticRetriever(self.dense)

    async def retrieve(
        self, text: str, top_k: int = 5, options: Optional[RetrievalOptions] = None
    ) -> List[Chunk]:
        """Final context chunks for ``text`` after retrieval and post-processing."""
        options = options or RetrievalOptions()
        store = self._load_store(options)
        chunks = store.get_chunks()
        mode = options.mode
        stages = options.post_stages

        pool = self._search_pool(chunks, PostStage.INCLUDE_PARENTS in stages)
        retrieval_k = top_k
        if PostStage.RERANK in stages:
            retrieval_k = max(top_k * 4, self.config.rerank_candidates)
        logger.info(
            "Retrieving with mode=%s stages=%s over %s chunks",
            mode.value,
            [s.value for s in stages],
            len(pool),
        )

        results = await self._retriever(mode).retrieve(text, pool, retrieval_k)

        for stage in stages:
            if not results:
                break
            if stage is PostStage.RERANK:
                reranker = LLMReranker(self.llm, self.config.max_concurrency)
                results = (await reranker.rerank(text, results))[:top_k]
            elif stage is PostStage.INCLUDE_PARENTS:
                results = include_parents(results, chunks)
            elif stage is PostStage.EXPAND_CONTEXT:
                results = await ContextExpander(self.config.context_window).expand_chunks(results)
        return results

    async def query(
        self, text: str, top_k: int = 5, options: Optional[RetrievalOptions] = None
    ) -> GeneratedAnswer:
        """Retrieve context and generate one answer; no provider call without context."""
        chunks = await self.retrieve(text, top_k=top_k, options=options)
        if not chunks:
            logger.info("No relevant context for query")
            return GeneratedAnswer(answer=NO_CONTEXT_ANSWER)
        return await AnswerGenerator(self.llm, self.generation).generate(text, chunks)
