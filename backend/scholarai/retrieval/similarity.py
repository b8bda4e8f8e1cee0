"""Vector similarity helpers."""

from __future__ import annotations

import math
from typing import Sequence

EPSILON = 1e-8


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; the epsilon keeps zero vectors at a score of 0."""
    if len(a) != len(b):
        raise ValueError("Vector dimension mismatch")
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b) + EPSILON)


__all__ = ["cosine", "EPSILON"]
