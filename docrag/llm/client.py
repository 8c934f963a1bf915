"""
Async generation client for OpenAI-compatible APIs (Ollama, vLLM, OpenAI, etc.).
"""

from __future__ import annotations

import asyncio
import logging
import os
import random
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from openai import AsyncOpenAI

# Load .env file if it exists
project_root = Path(__file__).resolve().parents[2]
env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)


# Ollama exposes an OpenAI-compatible API under /v1 and ignores the key
DEFAULT_BASE_URL = "http://localhost:11434/v1"
DEFAULT_API_KEY = "ollama"
DEFAULT_MODEL = "llama2"

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """The generation endpoint failed or kept rate-limiting."""


def _resolve_client_params(
    model_name: Optional[str] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
) -> tuple[str, str, str]:
    """Resolve model, api_key, base_url from args, then env, then Ollama defaults."""
    model = model_name or os.getenv("LLM_MODEL") or DEFAULT_MODEL
    key = api_key or os.getenv("LLM_API_KEY") or DEFAULT_API_KEY
    base = base_url or os.getenv("LLM_BASE_URL") or DEFAULT_BASE_URL
    return model, key, base


def _is_rate_limit(error: Exception) -> bool:
    text = str(error)
    return "429" in text or "concurrency" in text.lower() or "rate limit" in text.lower()


class GenerationClient:
    """OpenAI-compatible chat client used as the generation provider."""

    def __init__(
        self,
        model_name: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.3,
        max_retries: int = 3,
        timeout: float = 120.0,
    ):
        self.model_name, key, self.base_url = _resolve_client_params(
            model_name=model_name, api_key=api_key, base_url=base_url
        )
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_retries = max(1, max_retries)
        self.client = AsyncOpenAI(base_url=self.base_url, api_key=key, timeout=timeout)

    async def generate(
        self,
        prompt: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        stop: Optional[List[str]] = None,
    ) -> str:
        """Generate text for a single prompt; raises GenerationError on failure."""
        create_kw: dict = {
            "model": self.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens or self.max_tokens,
            "temperature": self.temperature if temperature is None else temperature,
        }
        if stop:
            create_kw["stop"] = stop

        retry_count = 0
        while True:
            try:
                response = await self.client.chat.completions.create(**create_kw)
            except Exception as e:
                if not _is_rate_limit(e):
                    logger.error("Error calling generation API: %s", e)
                    raise GenerationError(f"Generation request failed: {e}") from e
                retry_count += 1
                if retry_count >= self.max_retries:
                    logger.warning("Rate limit exceeded after %s retries", self.max_retries)
                    raise GenerationError("Generation rate limit exceeded") from e
                # Exponential backoff with jitter
                backoff = (2 ** retry_count) + random.uniform(0, 1.0)
                logger.warning(
                    "Rate limit hit. Retrying in %s s (attempt %s/%s)",
                    round(backoff, 1),
                    retry_count,
                    self.max_retries,
                )
                await asyncio.sleep(backoff)
                continue

            if not response.choices:
                logger.warning("Empty response from generation API")
                return ""
            text = response.choices[0].message.content or ""
            if not text.strip():
                logger.warning(
                    "Empty content in response (finish_reason=%s)",
                    getattr(response.choices[0], "finish_reason", "?"),
                )
            return text.strip()


def create_client(
    model_name: Optional[str] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
) -> GenerationClient:
    """Create a generation client from args or environment."""
    return GenerationClient(model_name=model_name, api_key=api_key, base_url=base_url)
