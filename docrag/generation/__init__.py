"""
Answer generation module for RAG pipeline.

- Context building from retrieved chunks ([Context n] blocks with sources)
- Answer generation with a single provider call
"""

from .config import GenerationConfig
from .context_builder import build_context
from .generator import AnswerGenerator, GeneratedAnswer, build_prompt
from .prompts import ANSWER_PROMPT, NO_CONTEXT_ANSWER

__all__ = [
    "build_context",
    "build_prompt",
    "GenerationConfig",
    "ANSWER_PROMPT",
    "NO_CONTEXT_ANSWER",
    "AnswerGenerator",
    "GeneratedAnswer",
]
