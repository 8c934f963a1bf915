"""Configuration for answer generation."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class GenerationConfig:
    """
    Settings for RAG answer generation.

    Sampling settings (max tokens, temperature) belong to the generation client.
    """

    context_max_tokens: int = 4000
    include_sources: bool = True
