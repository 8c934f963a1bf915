"""
Tests for retrieval and generation evaluation and dataset reports.
"""

from __future__ import annotations

import json

import pytest

from docrag import RAGSystem
from docrag.evaluation import (
    EvalItem,
    GenerationJudge,
    GenerationMetrics,
    RAGEvaluator,
    RetrievalMetrics,
    average,
    average_generation,
    evaluate,
    evaluate_dataset,
    load_dataset,
    parse_verdict,
    precision_at_k,
    recall_at_k,
    reciprocal_rank,
)
from docrag.indexing import ChunkingConfig

from tests.fakes import FakeEmbedder, FakeLLMClient, make_chunk


@pytest.fixture
def ranked():
    return [make_chunk(t, i) for i, t in enumerate(["a", "b", "c", "d"])]


def test_precision_at_k(ranked):
    relevant = [ranked[1].key, ranked[3].key]
    assert precision_at_k(ranked, relevant, 2) == 0.5
    assert precision_at_k(ranked, relevant, 4) == 0.5
    assert precision_at_k(ranked[:1], relevant, 5) == 0.0
    assert precision_at_k([], relevant, 5) == 0.0


def test_recall_at_k(ranked):
    relevant = [ranked[1].key, ranked[3].key, "missing"]
    assert recall_at_k(ranked, relevant, 2) == pytest.approx(1 / 3)
    assert recall_at_k(ranked, relevant, 4) == pytest.approx(2 / 3)
    assert recall_at_k(ranked, [], 4) == 0.0


def test_reciprocal_rank(ranked):
    assert reciprocal_rank(ranked, [ranked[2].key]) == pytest.approx(1 / 3)
    assert reciprocal_rank(ranked, [ranked[0].key, ranked[2].key]) == 1.0
    assert reciprocal_rank(ranked, ["missing"]) == 0.0


def test_evaluate_and_average(ranked):
    m = evaluate(ranked, [ranked[0].key], k=2)
    assert m == RetrievalMetrics(precision_at_k=0.5, recall_at_k=1.0, mrr=1.0)
    assert average([m, RetrievalMetrics()]) == RetrievalMetrics(0.25, 0.5, 0.5)
    assert average([]) == RetrievalMetrics()


def test_load_dataset(tmp_path):
    path = tmp_path / "dataset.json"
    path.write_text(
        json.dumps(
            {
                "queries": [
                    {"query": "what is a deadlock", "relevantChunkIds": ["k1", "k2"]},
                    {"query": "tcp", "relevant_chunk_ids": ["k3"]},
                ]
            }
        ),
        encoding="utf-8",
    )
    assert load_dataset(path) == [
        EvalItem(query="what is a deadlock", relevant_chunk_ids=["k1", "k2"]),
        EvalItem(query="tcp", relevant_chunk_ids=["k3"]),
    ]


@pytest.mark.anyio
async def test_evaluate_dataset(ranked):
    seen = []

    async def retrieve(query, k):
        seen.append((query, k))
        return ranked[:k]

    items = [EvalItem("q1", [ranked[0].key]), EvalItem("q2", ["missing"])]
    metrics = await evaluate_dataset(items, retrieve, k=2)
    assert seen == [("q1", 2), ("q2", 2)]
    assert metrics.mrr == pytest.approx(0.5)
    assert metrics.recall_at_k == pytest.approx(0.5)
    assert metrics.precision_at_k == pytest.approx(0.25)


# --- Generation metrics ---


def test_parse_verdict():
    assert parse_verdict("Yes.") == 1.0
    assert parse_verdict("no") == 0.0
    assert parse_verdict("No, although yes in part") == 0.0
    assert parse_verdict("I don't know") is None
    assert parse_verdict("") is None


@pytest.mark.anyio
async def test_judge_scores_both_metrics(ranked):
    def respond(prompt: str) -> str:
        return "Yes" if "grounded in the provided context" in prompt else "No."

    llm = FakeLLMClient(responder=respond)
    metrics = await GenerationJudge(llm).evaluate("what is b", ranked[:2], "b is b")
    assert metrics == GenerationMetrics(faithfulness=1.0, answer_relevance=0.0)
    assert len(llm.prompts) == 2
    faithfulness_prompt = next(p for p in llm.prompts if "grounded" in p)
    assert "[Context 1]\na\n\n[Context 2]\nb" in faithfulness_prompt


@pytest.mark.anyio
async def test_judge_falls_back_to_neutral(ranked):
    failing = GenerationJudge(FakeLLMClient(error=RuntimeError("judge offline")))
    assert await failing.evaluate("q", ranked, "r") == GenerationMetrics(0.5, 0.5)

    unclear = GenerationJudge(FakeLLMClient(responses=["maybe"]))
    assert await unclear.answer_relevance("q", "r") == 0.5


def test_average_generation():
    metrics = [GenerationMetrics(1.0, 0.5), GenerationMetrics(0.0, 0.5)]
    assert average_generation(metrics) == GenerationMetrics(0.5, 0.5)
    assert average_generation([]) == GenerationMetrics()


# --- Dataset evaluation ---


CONTENT = (
    "A deadlock happens when processes wait on each other forever. "
    "Process scheduling decides which process runs on the cpu next. "
    "The tcp handshake opens a connection with SYN and ACK packets. "
    "Memory paging maps virtual pages to physical frames."
)


def _respond(prompt: str) -> str:
    if prompt.startswith("Evaluate whether"):
        return "yes"
    return "TCP opens connections with SYN and ACK."


async def _indexed_system(tmp_path) -> RAGSystem:
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "doc.md").write_text(CONTENT, encoding="utf-8")
    system = RAGSystem(
        embedder=FakeEmbedder(),
        llm=FakeLLMClient(responder=_respond),
        chunking=ChunkingConfig(chunk_size=120, overlap=20),
        store_dir=tmp_path / "store",
    )
    await system.index(str(docs))
    return system


@pytest.mark.anyio
async def test_evaluator_report(tmp_path):
    system = await _indexed_system(tmp_path)
    tcp_key = (await system.retrieve("tcp handshake", top_k=1))[0].key

    items = [EvalItem("tcp handshake", [tcp_key]), EvalItem("memory paging", ["missing"])]
    report = await RAGEvaluator(system).evaluate(items, k=1)

    assert report.total_queries == 2
    first = report.results[0]
    assert first.answer == "TCP opens connections with SYN and ACK."
    assert [c.key for c in first.chunks] == [tcp_key]
    assert first.retrieval == RetrievalMetrics(1.0, 1.0, 1.0)
    assert first.generation == GenerationMetrics(1.0, 1.0)
    assert report.results[1].retrieval == RetrievalMetrics()
    assert report.retrieval == RetrievalMetrics(0.5, 0.5, 0.5)
    assert report.generation == GenerationMetrics(1.0, 1.0)


@pytest.mark.anyio
async def test_evaluate_single_without_relevant_ids(tmp_path):
    system = await _indexed_system(tmp_path)
    judge = GenerationJudge(FakeLLMClient(error=RuntimeError("judge offline")))
    result = await RAGEvaluator(system, judge=judge).evaluate_single("tcp handshake", k=2)
    assert len(result.chunks) == 2
    assert result.retrieval == RetrievalMetrics()
    assert result.generation == GenerationMetrics(0.5, 0.5)


@pytest.mark.anyio
async def test_baseline_fuses_dense_and_keyword_scores(tmp_path):
    system = await _indexed_system(tmp_path)
    tcp_key = (await system.retrieve("tcp handshake", top_k=1))[0].key
    evaluator = RAGEvaluator(system)

    baseline = await evaluator.baseline_retrieve("tcp handshake", k=2)
    assert len(baseline) == 2
    assert baseline[0].key == tcp_key

    metrics = await evaluator.evaluate_baseline([EvalItem("tcp handshake", [tcp_key])], k=2)
    assert metrics.mrr == 1.0
    assert metrics.recall_at_k == 1.0
