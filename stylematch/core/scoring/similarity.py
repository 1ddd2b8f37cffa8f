"""
Cosine distance and vector helpers for multi-vector matching.

All similarity math runs in float64 so that identical vectors produce a
distance of exactly 0.0 and a final score of exactly 100.

A zero-norm vector has no direction. It is never treated as a perfect
match; functions here return ``None`` for it and callers treat the slot as
non-comparable.

Example:
    >>> from stylematch.core.scoring.similarity import cosine_distance
    >>> d = cosine_distance(embedding_a, embedding_b)
    >>> print(f"Distance: {d:.4f}")
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Union

import numpy as np

# Type alias for vectors
VectorLike = Union[np.ndarray, List[float]]

MIN_DISTANCE = 0.0
MAX_DISTANCE = 2.0


def as_vector(vec: VectorLike) -> np.ndarray:
    """Convert a vector-like value to a 1-D float32 numpy array."""
    return np.asarray(vec, dtype=np.float32).reshape(-1)


def is_valid_vector(vec: Optional[VectorLike]) -> bool:
    """
    Check a vector is usable: present, 1-D, non-empty and finite.

    Example:
        >>> is_valid_vector(np.array([0.1, 0.2]))
        True
        >>> is_valid_vector(np.array([np.nan, 1.0]))
        False
    """
    if vec is None:
        return False
    arr = np.asarray(vec)
    return arr.ndim == 1 and arr.size > 0 and bool(np.all(np.isfinite(arr)))


def cosine_similarity(
    vec_a: VectorLike,
    vec_b: VectorLike,
) -> Optional[float]:
    """
    Compute cosine similarity between two vectors.

    Cosine similarity measures the angle between vectors, ranging from:
    - 1.0: Identical direction (most similar)
    - 0.0: Orthogonal (no similarity)
    - -1.0: Opposite direction (least similar)

    Args:
        vec_a: First vector (numpy array or list).
        vec_b: Second vector (numpy array or list).

    Returns:
        Cosine similarity in [-1, 1], or None if either vector has zero norm.

    Raises:
        ValueError: If vectors have different dimensions.

    Example:
        >>> a = np.array([1.0, 0.0, 0.0])
        >>> cosine_similarity(a, a)
        1.0
        >>> cosine_similarity(a, np.zeros(3)) is None
        True
    """
    a = np.asarray(vec_a, dtype=np.float64)
    b = np.asarray(vec_b, dtype=np.float64)

    if a.shape != b.shape:
        raise ValueError(
            f"Vector dimensions must match: {a.shape} vs {b.shape}"
        )

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)

    if norm_a == 0 or norm_b == 0:
        return None

    similarity = np.dot(a, b) / (norm_a * norm_b)

    # Clip to [-1, 1] to handle floating point errors
    return float(np.clip(similarity, -1.0, 1.0))


def cosine_distance(
    vec_a: VectorLike,
    vec_b: VectorLike,
) -> Optional[float]:
    """
    Compute cosine distance ``1 - cos_sim`` clamped to [0, 2].

    Returns:
        Distance where 0 = identical direction and 2 = opposite, or None
        if either vector has zero norm.

    Raises:
        ValueError: If vectors have different dimensions.
    """
    similarity = cosine_similarity(vec_a, vec_b)
    if similarity is None:
        return None
    return similarity_to_distance(similarity)


def similarity_to_distance(similarity: float) -> float:
    """
    Convert cosine similarity to a distance in [0, 2].

    Args:
        similarity: Cosine similarity in [-1, 1].

    Returns:
        Distance in [0, 2] where 0 = identical.
    """
    return float(min(MAX_DISTANCE, max(MIN_DISTANCE, 1.0 - similarity)))


def distance_to_score(distance: float, precision: int = 2) -> float:
    """
    Map a weighted distance to a 0-100 match score.

    ``score = clamp(100 * (1 - distance / 2), 0, 100)`` rounded to
    ``precision`` decimals.

    Example:
        >>> distance_to_score(0.0)
        100.0
        >>> distance_to_score(0.5)
        75.0
    """
    score = 100.0 * (1.0 - distance / MAX_DISTANCE)
    return round(min(100.0, max(0.0, score)), precision)


def l2_normalize(vec: VectorLike) -> Optional[np.ndarray]:
    """
    Scale a vector to unit L2 norm.

    Returns:
        Normalized float32 vector, or None for a zero-norm vector.
    """
    arr = np.asarray(vec, dtype=np.float64)
    norm = np.linalg.norm(arr)
    if norm == 0 or not np.isfinite(norm):
        return None
    return (arr / norm).astype(np.float32)


def mean_normalized(vectors: Iterable[Optional[VectorLike]]) -> Optional[np.ndarray]:
    """
    L2-normalized elementwise mean of the present vectors.

    ``None`` entries are skipped, so a single present vector yields that
    vector normalized.

    Returns:
        Normalized mean vector, or None if no vector is present or the
        mean has zero norm.

    Raises:
        ValueError: If present vectors have different dimensions.

    Example:
        >>> hybrid = mean_normalized([visual, style])
        >>> only_visual = mean_normalized([visual, None])
    """
    present = [np.asarray(v, dtype=np.float64) for v in vectors if v is not None]
    if not present:
        return None

    shapes = {v.shape for v in present}
    if len(shapes) > 1:
        raise ValueError(f"Vector dimensions must match: {sorted(shapes)}")

    return l2_normalize(np.mean(np.stack(present), axis=0))
