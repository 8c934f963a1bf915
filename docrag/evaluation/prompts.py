"""Prompt templates for LLM-judged answer quality."""

FAITHFULNESS_PROMPT = """Evaluate whether the following response is grounded in the provided context.

Query: "{query}"

Context:
{context}

Response: "{response}"

Is the response fully supported by the context? Answer with only "yes" or "no"."""

ANSWER_RELEVANCE_PROMPT = """Evaluate whether the following response answers the query.

Query: "{query}"

Response: "{response}"

Does the response answer the query? Answer with only "yes" or "no"."""
