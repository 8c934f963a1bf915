"""
Utility functions for RAG module.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Tuple

TOKEN_SPLIT_RE = re.compile(r"\W+")

# Terminal punctuation followed by whitespace or end of text
SENTENCE_END_RE = re.compile(r"[.!?]+(?=\s|$)")

# Leading "1.", "2)", "-", "*", "•", "Variation 1:", "Query:" markers
LIST_MARKER_RE = re.compile(
    r"^\s*(?:(?:variation|query|concept)\s*\d*\s*[:.)-]\s*|\d+\s*[.):-](?!\d)\s*|[-*•]\s+)",
    re.IGNORECASE,
)


def iter_tokens(text: str) -> Iterable[str]:
    """Lowercase tokens split on runs of non-word characters."""
    for tok in TOKEN_SPLIT_RE.split(text.lower()):
        if tok:
            yield tok


def sentence_spans(text: str) -> List[Tuple[int, int]]:
    """
    Half-open ``(start, end)`` offsets of each sentence in ``text``.

    A sentence ends at a run of ``.!?`` followed by whitespace or the end of
    the text; trailing text without terminal punctuation is the last sentence.
    Surrounding whitespace is excluded from every span.
    """
    spans: List[Tuple[int, int]] = []
    pos = 0
    for match in SENTENCE_END_RE.finditer(text):
        _append_trimmed(text, pos, match.end(), spans)
        pos = match.end()
    if pos < len(text):
        _append_trimmed(text, pos, len(text), spans)
    return spans


def _append_trimmed(text: str, start: int, end: int, spans: List[Tuple[int, int]]) -> None:
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    if start < end:
        spans.append((start, end))


def clean_list_line(line: str) -> str:
    """Strip numbering/bullets and wrapping quotes from one generated line."""
    line = LIST_MARKER_RE.sub("", line.strip(), count=1).strip()
    if len(line) >= 2 and line[0] == line[-1] and line[0] in "\"'":
        line = line[1:-1].strip()
    return line


def parse_lines(response: str, limit: int) -> List[str]:
    """Non-empty cleaned lines of an LLM response, at most ``limit``."""
    lines: List[str] = []
    for raw in response.splitlines():
        cleaned = clean_list_line(raw)
        if cleaned:
            lines.append(cleaned)
        if len(lines) >= limit:
            break
    return lines
