"""
Tests for the LLM-backed query helpers (expansion, reranking) and context expansion.
"""

from __future__ import annotations

import pytest

from docrag.rag import ContextExpander, LLMReranker, QueryExpander
from docrag.rag.context_window import expand_span
from docrag.rag.reranker import NEUTRAL_SCORE, parse_score
from docrag.rag.utils import clean_list_line, iter_tokens, parse_lines, sentence_spans

from tests.fakes import FakeLLMClient, make_chunk


# --- Text utilities ---


def test_sentence_spans():
    text = "Hello world. How are you?  Fine"
    assert sentence_spans(text) == [(0, 12), (13, 25), (27, 31)]
    assert sentence_spans("Version v1.2 is out.") == [(0, 20)]
    assert sentence_spans("   ") == []


def test_iter_tokens():
    assert list(iter_tokens("TCP/IP three-way Handshake!")) == ["tcp", "ip", "three", "way", "handshake"]


@pytest.mark.parametrize(
    "line,expected",
    [
        ("1. gamma", "gamma"),
        ("2) delta rays", "delta rays"),
        ("- beta", "beta"),
        ("* beta", "beta"),
        ("Variation 2: how do locks work", "how do locks work"),
        ('"quoted phrase"', "quoted phrase"),
        ("3.5 is a number", "3.5 is a number"),
    ],
)
def test_clean_list_line(line, expected):
    assert clean_list_line(line) == expected


def test_parse_lines_limits_and_skips_blanks():
    assert parse_lines("a\n\n- b\n3. c\nd", 3) == ["a", "b", "c"]
    assert parse_lines("", 3) == []


# --- Query expansion ---


@pytest.mark.anyio
async def test_expand_returns_original_first():
    llm = FakeLLMClient(responses=["1. What causes deadlocks?\n2. Why do processes block forever?"])
    variants = await QueryExpander(llm, num_variations=3).expand("deadlock causes")
    assert variants == ["deadlock causes", "What causes deadlocks?", "Why do processes block forever?"]
    assert len(llm.prompts) == 1
    assert "Generate 2 different variations" in llm.prompts[0]
    assert '"deadlock causes"' in llm.prompts[0]


@pytest.mark.anyio
async def test_expand_pads_and_truncates():
    short = await QueryExpander(FakeLLMClient(responses=["only one"]), 3).expand("q")
    assert short == ["q", "only one", "q"]

    long = await QueryExpander(FakeLLMClient(responses=["a\nb\nc\nd"]), 3).expand("q")
    assert long == ["q", "a", "b"]


@pytest.mark.anyio
async def test_expand_falls_back_to_original_query():
    expander = QueryExpander(FakeLLMClient(error=RuntimeError("timeout")))
    outcome = await expander.try_expand("q")
    assert outcome.value == ["q"]
    assert outcome.degraded
    assert await expander.expand("q") == ["q"]


def test_expand_clamps_variation_count():
    llm = FakeLLMClient()
    assert QueryExpander(llm, 10).num_variations == 5
    assert QueryExpander(llm, 1).num_variations == 2


# --- Reranking ---


@pytest.mark.parametrize(
    "response,expected",
    [("0.85", 0.85), ("Score: 0.3", 0.3), ("7", 1.0), ("1", 1.0), ("0", 0.0), ("not a number", None), ("", None)],
)
def test_parse_score(response, expected):
    assert parse_score(response) == expected


def _scores_by_topic(prompt: str) -> str:
    if "tcp" in prompt:
        return "0.9"
    if "deadlock" in prompt:
        return "0.2"
    return "0.5"


@pytest.mark.anyio
async def test_rerank_orders_by_score(sample_chunks):
    llm = FakeLLMClient(responder=_scores_by_topic)
    reranked = await LLMReranker(llm).rerank("networking", sample_chunks)
    assert reranked == [sample_chunks[2], sample_chunks[1], sample_chunks[0]]
    assert len(llm.prompts) == 3
    assert all(p.startswith("Rate the relevance") for p in llm.prompts)


@pytest.mark.anyio
async def test_rerank_trivial_inputs_make_no_calls(sample_chunks):
    llm = FakeLLMClient(responses=["0.9"])
    reranker = LLMReranker(llm)
    assert await reranker.rerank("q", []) == []
    assert await reranker.rerank("q", sample_chunks[:1]) == sample_chunks[:1]
    assert llm.prompts == []


@pytest.mark.anyio
async def test_rerank_failures_keep_input_order(sample_chunks):
    reranker = LLMReranker(FakeLLMClient(error=RuntimeError("provider down")), max_concurrency=1)
    assert await reranker.rerank("q", sample_chunks) == sample_chunks

    outcome = await reranker.try_score("q", sample_chunks[0])
    assert outcome.value == NEUTRAL_SCORE
    assert outcome.degraded


@pytest.mark.anyio
async def test_rerank_unparsable_score_is_neutral(sample_chunks):
    def respond(prompt: str) -> str:
        return "0.9" if "tcp" in prompt else "no idea"

    reranked = await LLMReranker(FakeLLMClient(responder=respond)).rerank("q", sample_chunks)
    assert reranked == [sample_chunks[2], sample_chunks[0], sample_chunks[1]]


# --- Context expansion ---


DOCUMENT = "S1 one. S2 two. S3 three. S4 four. S5 five."


def _span_of(sentence: str):
    start = DOCUMENT.index(sentence)
    return start, start + len(sentence)


@pytest.fixture
def document_path(tmp_path):
    path = tmp_path / "sentences.txt"
    path.write_text(DOCUMENT, encoding="utf-8")
    return str(path)


def _chunk_at(path: str, sentence: str, index: int = 0):
    start, end = _span_of(sentence)
    return make_chunk(DOCUMENT[start:end], index, source=path, start=start)


def test_expand_span():
    start, end = _span_of("S3 three.")
    assert expand_span(DOCUMENT, start, end, 1) == (_span_of("S2 two.")[0], _span_of("S4 four.")[1])
    assert expand_span(DOCUMENT, start, end, 0) == (start, end)
    assert expand_span(DOCUMENT, 500, 600, 1) is None


@pytest.mark.anyio
async def test_expand_chunk_by_window(document_path):
    chunk = _chunk_at(document_path, "S3 three.")

    one = await ContextExpander(window=1).expand_chunk(chunk)
    assert one.text == "S2 two. S3 three. S4 four."
    assert (one.metadata.start_index, one.metadata.end_index) == (_span_of("S2 two.")[0], _span_of("S4 four.")[1])
    assert one.metadata.chunk_index == chunk.metadata.chunk_index

    two = await ContextExpander(window=2).expand_chunk(chunk)
    assert two.text == DOCUMENT
    # the original is left untouched
    assert chunk.text == "S3 three."


@pytest.mark.anyio
async def test_expand_partial_sentence_widens_to_whole_sentence(document_path):
    start = DOCUMENT.index("three")
    chunk = make_chunk("three", 0, source=document_path, start=start)
    expanded = await ContextExpander(window=0).expand_chunk(chunk)
    assert expanded.text == "S3 three."


@pytest.mark.anyio
async def test_expand_missing_source_returns_same_chunk():
    chunk = make_chunk("orphan", 0, source="/nonexistent/dir/missing.md")
    assert await ContextExpander().expand_chunk(chunk) is chunk
    no_source = make_chunk("orphan", 0, source=None)
    assert await ContextExpander().expand_chunk(no_source) is no_source


@pytest.mark.anyio
async def test_expand_out_of_range_offsets_fall_back(document_path):
    chunk = make_chunk("stale", 0, source=document_path, start=500)
    outcome = await ContextExpander().try_expand(chunk)
    assert outcome.value is chunk
    assert outcome.degraded


@pytest.mark.anyio
async def test_expand_chunks_preserves_order(document_path):
    chunks = [_chunk_at(document_path, "S5 five.", 4), _chunk_at(document_path, "S1 one.", 0)]
    expanded = await ContextExpander(window=1).expand_chunks(chunks)
    assert [c.text for c in expanded] == ["S4 four. S5 five.", "S1 one. S2 two."]
