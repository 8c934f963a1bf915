"""
RAG evaluation: retrieval metrics, LLM-judged generation metrics and
dataset-level reports.
"""

from .evaluator import EvaluationReport, QueryEvaluation, RAGEvaluator
from .generation_metrics import (
    GenerationJudge,
    GenerationMetrics,
    average_generation,
    parse_verdict,
)
from .retrieval_metrics import (
    EvalItem,
    RetrievalMetrics,
    average,
    evaluate,
    evaluate_dataset,
    load_dataset,
    precision_at_k,
    recall_at_k,
    reciprocal_rank,
)

__all__ = [
    "EvalItem",
    "RetrievalMetrics",
    "average",
    "evaluate",
    "evaluate_dataset",
    "load_dataset",
    "precision_at_k",
    "recall_at_k",
    "reciprocal_rank",
    "GenerationJudge",
    "GenerationMetrics",
    "average_generation",
    "parse_verdict",
    "RAGEvaluator",
    "EvaluationReport",
    "QueryEvaluation",
]
