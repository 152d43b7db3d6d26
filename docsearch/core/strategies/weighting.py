"""Adaptive vector/lexical weighting based on query shape."""

import logging
import re
from enum import Enum

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"\b\d+\b")
_ACRONYM_RE = re.compile(r"[A-Z]{2,}")
_CONCEPTUAL_WORDS = ("what", "how", "why")


class QueryProfile(str, Enum):
    """Which retrieval path a query is expected to favour."""
    LEXICAL = "lexical"
    VECTOR = "vector"
    BALANCED = "balanced"


PROFILE_WEIGHTS = {
    QueryProfile.LEXICAL: 0.3,
    QueryProfile.VECTOR: 0.8,
    QueryProfile.BALANCED: 0.7,
}


def classify_query(query: str) -> QueryProfile:
    """Classify query as lexical-favouring, vector-favouring or balanced."""
    if '"' in query or _NUMBER_RE.search(query) or _ACRONYM_RE.search(query):
        return QueryProfile.LEXICAL

    query_lower = query.lower()
    if any(word in query_lower for word in _CONCEPTUAL_WORDS):
        return QueryProfile.VECTOR

    return QueryProfile.BALANCED


def adaptive_vector_weight(query: str) -> float:
    """Vector weight for automatic mode."""
    profile = classify_query(query)
    weight = PROFILE_WEIGHTS[profile]
    logger.debug(f"Adaptive weight: {profile.value} -> {weight} for '{query[:50]}'")
    return weight
