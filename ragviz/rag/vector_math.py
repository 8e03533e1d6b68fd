"""Similarity scoring and 2D layout for embedding vectors."""
from dataclasses import dataclass
from typing import Optional, Sequence
import numpy as np


@dataclass(frozen=True)
class Projection2D:
    """A point on the visualization plane. Layout only, never for ranking."""

    x: float
    y: float

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


def checked_cosine_similarity(a: Sequence[float], b: Sequence[float]) -> Optional[float]:
    """Cosine similarity that reports incomparable vectors as None.

    Args:
        a: First vector
        b: Second vector

    Returns:
        Similarity in [-1, 1], 0.0 if either vector has zero norm,
        or None if the vectors differ in length
    """
    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)

    if vec_a.shape != vec_b.shape:
        return None

    norm_a = float(np.dot(vec_a, vec_a))
    norm_b = float(np.dot(vec_b, vec_b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    similarity = float(np.dot(vec_a, vec_b)) / (np.sqrt(norm_a) * np.sqrt(norm_b))
    return max(-1.0, min(1.0, float(similarity)))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity between two vectors.

    Vectors of different lengths score 0.0, the same as orthogonal vectors.
    Use checked_cosine_similarity to tell the two cases apart.
    """
    similarity = checked_cosine_similarity(a, b)
    return 0.0 if similarity is None else similarity


def project_to_2d(vector: Sequence[float], seed: float) -> Projection2D:
    """Project a vector onto a plane with fixed sinusoidal weights.

    The same vector and seed always give the same point; all points drawn in
    one chart must share a seed. Not distance preserving.

    Args:
        vector: Embedding vector
        seed: Phase offset selecting the layout

    Returns:
        Projection2D point
    """
    values = np.asarray(vector, dtype=np.float64)
    i = np.arange(values.shape[0], dtype=np.float64)

    weights_x = np.sin(i * 1.1 + seed) * np.cos(i * 0.5)
    weights_y = np.cos(i * 1.3 + seed) * np.sin(i * 0.8)

    return Projection2D(
        x=float(np.sum(values * weights_x)),
        y=float(np.sum(values * weights_y)),
    )
