"""
Similarity ranking: cosine scoring, metadata filtering and top-k selection.

Everything here is pure and side-effect free so it can be tested apart from
the store. Selection keeps a bounded min-heap of size k, so memory stays at
O(k) regardless of how many candidates are scored.
"""

import heapq
from typing import Callable, Iterable, List, Mapping, NamedTuple, Optional, Tuple, Any

import numpy as np

from ..core.errors import DimensionMismatchError, ValidationError


class Candidate(NamedTuple):
    """A scoreable item: the payload, its vector and the vector's L2 norm."""
    item: Any
    vector: np.ndarray
    norm: float


def prepare_vector(values, context: str = "embedding") -> Tuple[np.ndarray, float]:
    """
    Copy values into a read-only float64 vector and compute its norm.

    Rejects input that is not a flat numeric sequence, is empty, contains
    NaN or infinity, or has zero magnitude.

    Returns:
        (vector, norm)
    """
    try:
        vector = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{context} must be a sequence of numbers: {e}") from e

    if vector.ndim != 1:
        raise ValidationError(f"{context} must be one-dimensional, got shape {vector.shape}")
    if vector.size == 0:
        raise ValidationError(f"{context} must not be empty")
    if not np.all(np.isfinite(vector)):
        raise ValidationError(f"{context} contains NaN or infinite values")

    norm = float(np.linalg.norm(vector))
    if norm == 0.0:
        raise ValidationError(f"{context} must not be an all-zero vector")
    if not np.isfinite(norm):
        raise ValidationError(f"{context} magnitude overflows float64")

    vector.setflags(write=False)
    return vector, norm


def cosine_similarity(a, b, a_norm: Optional[float] = None, b_norm: Optional[float] = None) -> float:
    """Cosine similarity of two equal-length vectors, clamped to [-1, 1]."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise DimensionMismatchError(a.shape[0] if a.ndim else 0, b.shape[0] if b.ndim else 0)

    if a_norm is None:
        a_norm = float(np.linalg.norm(a))
    if b_norm is None:
        b_norm = float(np.linalg.norm(b))
    if a_norm == 0.0 or b_norm == 0.0:
        raise ValidationError("cosine similarity is undefined for a zero vector")

    score = float(np.dot(a, b)) / (a_norm * b_norm)
    # Rounding can push parallel vectors just past 1.0
    return max(-1.0, min(1.0, score))


def matches_filter(metadata: Mapping[str, str], filter: Optional[Mapping[str, str]]) -> bool:
    """True when metadata has every filter key with an equal value."""
    if not filter:
        return True
    for key, value in filter.items():
        if key not in metadata or metadata[key] != value:
            return False
    return True


def top_k(
    query,
    candidates: Iterable[Candidate],
    k: int,
    tiebreaker: Optional[Callable[[Any], int]] = None,
    query_norm: Optional[float] = None,
) -> List[Tuple[Any, float]]:
    """
    Select the k best candidates by cosine similarity to the query.

    Args:
        query: Query vector
        candidates: Items to score, consumed in a single pass
        k: Number of results; 0 gives an empty list
        tiebreaker: Maps an item to an int; lower wins on equal scores.
            Defaults to the candidate's position in the iterable.
        query_norm: Precomputed norm of the query

    Returns:
        List of (item, score), descending by score then ascending tiebreaker
    """
    if k < 0:
        raise ValidationError(f"k must be >= 0, got {k}")
    if k == 0:
        return []

    query = np.asarray(query, dtype=np.float64)
    if query_norm is None:
        query_norm = float(np.linalg.norm(query))

    # Min-heap whose root is the weakest kept entry. Entries are
    # (score, -tie, -position, item); position is unique so items are
    # never compared.
    heap: List[Tuple[float, int, int, Any]] = []
    for position, candidate in enumerate(candidates):
        if candidate.vector.shape != query.shape:
            raise DimensionMismatchError(query.shape[0], candidate.vector.shape[0], "candidate")

        score = cosine_similarity(query, candidate.vector, query_norm, candidate.norm)
        tie = tiebreaker(candidate.item) if tiebreaker is not None else position
        entry = (score, -tie, -position, candidate.item)

        if len(heap) < k:
            heapq.heappush(heap, entry)
        elif entry > heap[0]:
            heapq.heapreplace(heap, entry)

    heap.sort(reverse=True)
    return [(item, score) for score, _, _, item in heap]
