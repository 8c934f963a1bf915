"""
Tests for retrieval components: BM25, RRF, dense, hybrid and multi-pass.
"""

from __future__ import annotations

import math

import pytest

from docrag.rag import (
    BM25Index,
    DenseSearcher,
    HybridSearcher,
    KeywordSearcher,
    MultiPassRetriever,
    RAGConfig,
    rrf_merge,
    rrf_merge_scored,
    rrf_merge_with_similarities,
    weighted_merge,
)
from docrag.rag.hierarchy import include_parents, searchable_chunks

from tests.fakes import FakeEmbedder, FakeLLMClient, make_chunk


# --- BM25 ---


def test_bm25_idf_is_smoothed():
    chunks = [make_chunk("apple banana", 0), make_chunk("apple cherry", 1), make_chunk("dates", 2)]
    index = BM25Index.from_chunks(chunks)
    assert index.bm25.idf["apple"] == pytest.approx(math.log(1.5 / 2.5 + 1))
    assert index.bm25.idf["dates"] == pytest.approx(math.log(2.5 / 1.5 + 1))
    # a term in every document still scores positively
    assert BM25Index.from_chunks(chunks[:2]).bm25.idf["apple"] > 0


def test_bm25_term_frequency_raises_score():
    once = make_chunk("apple banana cherry dates", 0)
    twice = make_chunk("apple apple cherry dates", 1)
    results = BM25Index.from_chunks([once, twice]).search("apple", top_k=5)
    assert [c.text for c, _ in results] == [twice.text, once.text]
    assert results[0][1] > results[1][1] > 0


def test_bm25_unknown_and_empty_queries(sample_chunks):
    index = BM25Index.from_chunks(sample_chunks)
    # every chunk is scored; unmatched chunks come back at zero in corpus order
    results = index.search("kubernetes", top_k=5)
    assert [c for c, _ in results] == sample_chunks
    assert [s for _, s in results] == [0.0, 0.0, 0.0]
    assert index.search("", top_k=5) == []
    assert index.search("...", top_k=5) == []


def test_bm25_keeps_zero_scores_after_matches(sample_chunks):
    results = BM25Index.from_chunks(sample_chunks).search("tcp", top_k=3)
    assert [c for c, _ in results] == [sample_chunks[2], sample_chunks[0], sample_chunks[1]]
    assert results[0][1] > 0
    assert results[1][1] == results[2][1] == 0.0


def test_bm25_statistics():
    chunks = [make_chunk("apple apple pie", 0), make_chunk("apple tart", 1)]
    index = BM25Index.from_chunks(chunks)
    assert index.document_count == 2
    assert index.average_document_length == pytest.approx(2.5)
    assert index.document_lengths == {chunks[0].key: 3, chunks[1].key: 2}
    assert index.term_frequencies["apple"] == {chunks[0].key: 2, chunks[1].key: 1}
    assert index.term_frequencies["tart"] == {chunks[1].key: 1}


def test_bm25_ties_keep_corpus_order():
    chunks = [make_chunk("memory paging", i) for i in range(3)] + [make_chunk("tcp", 3)]
    results = BM25Index.from_chunks(chunks).search("paging", top_k=2)
    assert [c.metadata.chunk_index for c, _ in results] == [0, 1]


def test_bm25_empty_corpus_and_tokenless_documents():
    empty = BM25Index.from_chunks([])
    assert empty.bm25 is None
    assert empty.search("anything") == []
    assert empty.average_document_length == 0.0

    blank = BM25Index.from_chunks([make_chunk("!!!", 0), make_chunk("???", 1)])
    assert blank.scores("anything") == [0.0, 0.0]
    assert [s for _, s in blank.search("anything")] == [0.0, 0.0]


def test_keyword_searcher_rebuilds_for_new_collection():
    searcher = KeywordSearcher()
    first = [make_chunk("deadlock detection", 0)]
    second = [make_chunk("tcp handshake", 0), make_chunk("deadlock avoidance", 1)]

    assert [c.text for c, _ in searcher.search("deadlock", first)] == ["deadlock detection"]
    assert [c.text for c, _ in searcher.search("deadlock", second, top_k=1)] == ["deadlock avoidance"]
    assert [c.text for c, _ in searcher.search("tcp", second, top_k=1)] == ["tcp handshake"]


def test_keyword_searcher_build_index_is_reused():
    searcher = KeywordSearcher(k1=1.2, b=0.5)
    chunks = [make_chunk("deadlock detection", 0), make_chunk("tcp handshake", 1)]
    index = searcher.build_index(chunks)
    assert index.document_count == 2
    assert index.bm25.k1 == 1.2
    assert searcher._current(chunks) is index

    # an equal but distinct list gets its own index
    copy = list(chunks)
    assert searcher._current(copy) is not index
    assert searcher.build_index(chunks) is not index


# --- RRF ---


def test_rrf_single_list_is_truncated_as_is():
    a, b, c = (make_chunk(t, i) for i, t in enumerate("abc"))
    assert rrf_merge([[a, b, c]], top_k=2) == [a, b]
    assert rrf_merge([], top_k=3) == []
    assert rrf_merge([[], []], top_k=3) == []


def test_rrf_is_independent_of_list_order():
    a, b, c = (make_chunk(t, i) for i, t in enumerate("abc"))
    forward = rrf_merge([[a, b, c], [c, b, a]], top_k=3)
    backward = rrf_merge([[c, b, a], [a, b, c]], top_k=3)
    assert forward == backward
    # a and c tie at 1/61 + 1/63, just above b at 2/62
    assert forward == [a, c, b]


def test_rrf_accumulates_across_lists():
    a, b = make_chunk("a", 0), make_chunk("b", 1)
    scored = rrf_merge_scored([[a, b], [b]], top_k=5, k_rrf=60)
    assert [chunk for chunk, _ in scored] == [b, a]
    assert scored[0][1] == pytest.approx(1 / 62 + 1 / 61)
    assert scored[1][1] == pytest.approx(1 / 61)


def test_rrf_deduplicates_by_identity_key():
    a = make_chunk("a", 0)
    a_copy = make_chunk("a", 0)
    merged = rrf_merge([[a], [a_copy]], top_k=5)
    assert len(merged) == 1


def test_rrf_with_similarities():
    a, b = make_chunk("a", 0), make_chunk("b", 1)
    merged = rrf_merge_with_similarities([[(a, 0.9), (b, 0.1)], [(b, 0.8)]], top_k=2)
    assert merged == [b, a]
    assert rrf_merge_with_similarities([[(a, 0.9), (b, 0.1)]], top_k=1) == [a]


def test_weighted_merge():
    a, b, c = (make_chunk(t, i) for i, t in enumerate("abc"))
    assert weighted_merge([a, b], [b, c], top_k=3) == [a, b, c]
    assert weighted_merge([a, b], [b, c], top_k=3, semantic_weight=0.3, keyword_weight=0.7) == [b, c, a]


# --- Dense ---


def test_dense_search_by_embedding(fake_embedder, sample_chunks):
    dense = DenseSearcher(fake_embedder)
    tcp = [0.0] * fake_embedder.dimension
    tcp[4] = 1.0
    results = dense.search_by_embedding(tcp, sample_chunks, top_k=2)
    assert results[0][0] is sample_chunks[2]
    assert results[0][1] == pytest.approx(1 / math.sqrt(2))
    assert len(results) == 2


def test_dense_zero_query_keeps_corpus_order(fake_embedder, sample_chunks):
    dense = DenseSearcher(fake_embedder)
    zero = [0.0] * fake_embedder.dimension
    results = dense.search_by_embedding(zero, sample_chunks, top_k=3)
    assert [c for c, _ in results] == sample_chunks
    assert all(score == 0.0 for _, score in results)


def test_dense_dimension_mismatch_returns_nothing(fake_embedder, sample_chunks):
    dense = DenseSearcher(fake_embedder)
    assert dense.search_by_embedding([1.0, 0.0], sample_chunks, top_k=3) == []
    assert dense.search_by_embedding([1.0] * fake_embedder.dimension, [], top_k=3) == []


@pytest.mark.anyio
async def test_dense_search_embeds_query(fake_embedder, sample_chunks):
    dense = DenseSearcher(fake_embedder)
    results = await dense.search("what is process scheduling", sample_chunks, top_k=1)
    assert results == [sample_chunks[1]]
    assert fake_embedder.calls == ["what is process scheduling"]


@pytest.mark.anyio
async def test_dense_search_empty_pool_skips_embedding(fake_embedder):
    dense = DenseSearcher(fake_embedder)
    assert await dense.search("anything", [], top_k=3) == []
    assert fake_embedder.calls == []


# --- Hybrid ---


@pytest.mark.anyio
async def test_hybrid_rrf(fake_embedder, sample_chunks):
    hybrid = HybridSearcher(DenseSearcher(fake_embedder), KeywordSearcher(), RAGConfig(store_dir="x"))
    results = await hybrid.retrieve("tcp handshake", sample_chunks, top_k=2)
    assert results[0] is sample_chunks[2]
    assert len(results) == 2


@pytest.mark.anyio
async def test_hybrid_weighted(fake_embedder, sample_chunks):
    config = RAGConfig(store_dir="x", use_rrf=False)
    hybrid = HybridSearcher(DenseSearcher(fake_embedder), KeywordSearcher(), config)
    results = await hybrid.retrieve("SYN ACK packets", sample_chunks, top_k=3)
    # dense scores all tie at zero, so the keyword hit is lifted above chunk 1 only
    assert results == [sample_chunks[0], sample_chunks[2], sample_chunks[1]]


# --- Multi-pass ---


GREEK = ("alpha", "beta", "gamma", "delta")


def _greek_chunks():
    chunks = []
    for i, word in enumerate(GREEK):
        emb = [0.0] * len(GREEK)
        emb[i] = 1.0
        chunks.append(make_chunk(word, i, embedding=emb))
    return chunks


def _multi_pass(llm):
    config = RAGConfig(store_dir="x", first_pass_k=2, second_pass_k=1)
    return MultiPassRetriever(DenseSearcher(FakeEmbedder(vocab=GREEK)), llm, config)


@pytest.mark.anyio
async def test_multi_pass_appends_concept_results():
    chunks = _greek_chunks()
    llm = FakeLLMClient(responses=["1. gamma\n2. delta"])
    results = await _multi_pass(llm).retrieve("alpha beta", chunks, top_k=10)
    assert [c.text for c in results] == ["alpha", "beta", "gamma", "delta"]
    assert len(llm.prompts) == 1
    assert "[Chunk 1]\nalpha" in llm.prompts[0]


@pytest.mark.anyio
async def test_multi_pass_truncates_to_top_k():
    llm = FakeLLMClient(responses=["gamma\ndelta"])
    results = await _multi_pass(llm).retrieve("alpha beta", _greek_chunks(), top_k=3)
    assert [c.text for c in results] == ["alpha", "beta", "gamma"]


@pytest.mark.anyio
async def test_multi_pass_falls_back_to_query_on_failure():
    llm = FakeLLMClient(error=RuntimeError("provider down"))
    results = await _multi_pass(llm).retrieve("alpha beta", _greek_chunks(), top_k=10)
    assert [c.text for c in results] == ["alpha", "beta"]


@pytest.mark.anyio
async def test_multi_pass_empty_pool_makes_no_calls():
    llm = FakeLLMClient(responses=["gamma"])
    assert await _multi_pass(llm).retrieve("alpha", [], top_k=5) == []
    assert llm.prompts == []


# --- Hierarchy ---


def test_include_parents_appends_once():
    parent = make_chunk("parent", 5)
    parent.metadata.is_parent = True
    c1, c2, orphan = make_chunk("one", 0), make_chunk("two", 1), make_chunk("orphan", 2)
    for child in (c1, c2):
        child.metadata.is_child = True
        child.metadata.parent_id = parent.key
    all_chunks = [c1, c2, orphan, parent]

    assert searchable_chunks(all_chunks) == [c1, c2, orphan]
    assert include_parents([c2, orphan, c1], all_chunks) == [c2, orphan, c1, parent]
    assert include_parents([orphan], all_chunks) == [orphan]
