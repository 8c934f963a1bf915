"""
Metadata enrichment for chunks: document type, section, abstraction level,
keywords, topics and source timestamp.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import re
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from docrag.llm.providers import GenerationProvider
from docrag.rag.fallback import Outcome
from docrag.rag.index import Chunk
from docrag.rag.prompts import ABSTRACTION_PROMPT

logger = logging.getLogger(__name__)

DOCUMENT_TYPES = {
    ".md": "markdown",
    ".txt": "text",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".py": "python",
    ".rs": "rust",
    ".go": "go",
    ".java": "java",
    ".cpp": "cpp",
    ".c": "c",
    ".h": "c",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".xml": "xml",
    ".html": "html",
    ".css": "css",
}

HEADER_RE = re.compile(r"^#{1,6}\s+(.+?)\s*#*\s*$", re.MULTILINE)
WORD_RE = re.compile(r"[^\w\s]")

HIGH_INDICATORS = (
    "concept",
    "pattern",
    "architecture",
    "design",
    "principle",
    "approach",
    "strategy",
    "overview",
    "summary",
)
LOW_INDICATORS = (
    "function",
    "class",
    "method",
    "variable",
    "const",
    "let",
    "import",
    "export",
    "return",
    "if",
    "for",
    "while",
)

MAX_KEYWORDS = 10
MAX_TOPICS = 5
CLASSIFY_CHARS = 500


def document_type(path: str) -> str:
    return DOCUMENT_TYPES.get(Path(path).suffix.lower(), "text")


def nearest_section(content: str, start_index: int) -> Optional[str]:
    """Text of the last markdown header that starts before ``start_index``."""
    section = None
    for match in HEADER_RE.finditer(content, 0, start_index):
        section = match.group(1).strip()
    return section


def heuristic_abstraction_level(text: str) -> str:
    lower = text.lower()
    high = sum(1 for word in HIGH_INDICATORS if word in lower)
    low = sum(1 for word in LOW_INDICATORS if word in lower)
    if high > low and high > 2:
        return "high"
    if low > high and low > 3:
        return "low"
    return "medium"


def parse_abstraction_level(response: str) -> str:
    normalized = (response or "").strip().lower()
    if "high" in normalized:
        return "high"
    if "low" in normalized:
        return "low"
    return "medium"


def extract_keywords(text: str, max_keywords: int = MAX_KEYWORDS) -> List[str]:
    """Words longer than four characters seen at least twice, most frequent first."""
    words = [w for w in WORD_RE.sub(" ", text.lower()).split() if len(w) > 4]
    counts = Counter(words)
    return [w for w, n in counts.most_common() if n >= 2][:max_keywords]


def file_timestamp(path: str) -> Optional[str]:
    try:
        mtime = Path(path).stat().st_mtime
    except OSError as e:
        logger.warning("Could not stat %s: %s", path, e)
        return None
    return (
        datetime.fromtimestamp(mtime, tz=timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class MetadataExtractor:
    """Fills the optional enrichment fields of chunk metadata."""

    def __init__(self, llm: Optional[GenerationProvider] = None, max_concurrency: int = 4):
        self.llm = llm
        self.max_concurrency = max(1, max_concurrency)

    async def try_classify(self, text: str) -> Outcome[str]:
        if self.llm is None:
            return Outcome.ok(heuristic_abstraction_level(text))
        prompt = ABSTRACTION_PROMPT.format(text=text[:CLASSIFY_CHARS])
        try:
            response = await self.llm.generate(prompt)
        except Exception as e:
            logger.warning("LLM classification failed, using heuristic: %s", e)
            return Outcome.fallback(heuristic_abstraction_level(text), e)
        return Outcome.ok(parse_abstraction_level(response))

    async def enrich(self, chunk: Chunk, content: Optional[str] = None) -> Chunk:
        """Return a copy of ``chunk`` with enrichment fields; hierarchy fields are kept."""
        md = chunk.metadata
        keywords = extract_keywords(chunk.text)
        level = (await self.try_classify(chunk.text)).value
        updates = {
            "abstraction_level": level,
            "keywords": keywords,
            "topics": keywords[:MAX_TOPICS],
        }
        if md.source_path:
            updates["document_type"] = document_type(md.source_path)
            updates["timestamp"] = file_timestamp(md.source_path)
        if content is not None:
            updates["section"] = nearest_section(content, md.start_index)
        return dataclasses.replace(chunk, metadata=dataclasses.replace(md, **updates))

    async def enrich_chunks(self, chunks: Sequence[Chunk], content: Optional[str] = None) -> List[Chunk]:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _one(chunk: Chunk) -> Chunk:
            async with semaphore:
                return await self.enrich(chunk, content)

        return list(await asyncio.gather(*(_one(c) for c in chunks)))
