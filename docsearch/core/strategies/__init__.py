"""Scoring and weighting strategies."""
from .relevance import HeuristicRelevanceStrategy, RelevanceStrategy
from .scoring import ChunkScoringStrategy, HeuristicScoringStrategy
from .weighting import QueryProfile, adaptive_vector_weight, classify_query

__all__ = [
    "ChunkScoringStrategy",
    "HeuristicScoringStrategy",
    "RelevanceStrategy",
    "HeuristicRelevanceStrategy",
    "QueryProfile",
    "adaptive_vector_weight",
    "classify_query",
]
