"""Prompt templates for RAG answer generation."""

ANSWER_PROMPT = """Based on the following context, answer the question. If the context doesn't contain enough information, say so.

Context:
{context}

Question: {query}

Answer:"""

NO_CONTEXT_ANSWER = "No relevant context found in the indexed document."
