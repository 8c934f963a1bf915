"""Prompt templates for the LLM-backed retrieval helpers."""

QUERY_EXPANSION_PROMPT = """Generate {count} different variations of this query. Each variation should:
- Capture different phrasings or synonyms
- Focus on different aspects if the query is complex
- Be concise (1-2 sentences max)
- Be semantically similar but use different wording

Original query: "{query}"

Generate {count} variations, one per line, without numbering or bullets:"""

RERANK_PROMPT = """Rate the relevance of this chunk to the query on a scale of 0.0 to 1.0, where:
- 1.0 = Perfectly relevant, directly answers the query
- 0.7-0.9 = Highly relevant, contains important information
- 0.4-0.6 = Somewhat relevant, tangentially related
- 0.1-0.3 = Low relevance, minimal connection
- 0.0 = Not relevant at all

Query: "{query}"

Chunk:
{chunk}

Respond with ONLY a number between 0.0 and 1.0 (e.g., 0.85):"""

CONCEPT_EXTRACTION_PROMPT = """Given this query and the retrieved context, identify 3-5 key concepts or topics that should be explored further.

Query: "{query}"

Context:
{context}

Identify 3-5 key concepts (one per line, without numbering or bullets) that would help answer this query comprehensively:"""

ABSTRACTION_PROMPT = """Classify the abstraction level of this text as "high", "medium", or "low".

High: Concepts, patterns, architecture, high-level descriptions
Medium: Implementation details, APIs, specific functionality
Low: Specific code, exact syntax, detailed implementation

Text: "{text}"

Respond with only one word: high, medium, or low."""
