# Scoring Package
"""
Similarity math, search-mode weights and weighted multi-vector matching.

Provides:
- cosine_distance: Distance between two embeddings, None for zero-norm input
- mean_normalized: Hybrid vector derivation
- resolve_weights: Search mode -> WeightProfile
- WeightedMultiVectorMatcher: Renormalized weighted scoring of candidates

Example:
    >>> from stylematch.core.scoring import WeightedMultiVectorMatcher, resolve_weights
    >>>
    >>> matcher = WeightedMultiVectorMatcher(resolve_weights("semantic"))
    >>> candidate = matcher.score(query_vectors, record)
"""

from .similarity import (
    cosine_distance,
    cosine_similarity,
    distance_to_score,
    l2_normalize,
    mean_normalized,
)
from .weighted_scorer import ScanResult, WeightedMultiVectorMatcher
from .weights import CANONICAL_PROFILES, SearchMode, WeightProfile, resolve_mode, resolve_weights

__all__ = [
    # Similarity functions
    "cosine_distance",
    "cosine_similarity",
    "distance_to_score",
    "l2_normalize",
    "mean_normalized",
    # Weights
    "CANONICAL_PROFILES",
    "SearchMode",
    "WeightProfile",
    "resolve_mode",
    "resolve_weights",
    # Matching
    "ScanResult",
    "WeightedMultiVectorMatcher",
]
