"""
Relevance scoring — lexical overlap between a query and stored content.

This is deliberately simple. A query token counts as matched when any content
token contains it or is contained in it, so "ai" matches "AI" and "learn"
matches "learning". When the whole query appears verbatim inside the content,
the score gets a flat +0.5 boost.

No stemming, no stop words, no embeddings: relevance here is lexical, not
semantic.
"""

from __future__ import annotations

from typing import Any

EXACT_MATCH_BOOST = 0.5


def score(query: Any, content: Any) -> float:
    """Return a relevance score in [0, 1]. Non-string inputs score 0."""
    if not isinstance(query, str) or not isinstance(content, str):
        return 0.0

    query_lower = query.lower()
    content_lower = content.lower()
    query_tokens = query_lower.split()
    content_tokens = content_lower.split()

    # A blank query would otherwise "appear" in every content string.
    if not query_tokens:
        return 0.0

    matches = sum(
        1
        for token in query_tokens
        if any(token in c_token or c_token in token for c_token in content_tokens)
    )
    similarity = matches / len(query_tokens)

    if query_lower in content_lower:
        return min(similarity + EXACT_MATCH_BOOST, 1.0)
    return similarity
