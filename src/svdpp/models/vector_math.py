"""Dense fixed-length vector helpers used by every gather/apply step.

Vectors are 1-d ``float64`` numpy arrays. Every helper returns a new array,
inputs are never modified in place.
"""
import numpy as np

from svdpp.engine.errors import DimensionMismatchError


def check_length(vector: np.ndarray, rank: int, what: str = "vector") -> np.ndarray:
    """Return *vector* as a float64 array, raising if it is not of length *rank*."""
    arr = np.asarray(vector, dtype=np.float64)
    if arr.ndim != 1 or arr.shape[0] != rank:
        actual = arr.shape[0] if arr.ndim == 1 else arr.size
        raise DimensionMismatchError(rank, actual, what)
    return arr


def _same_length(a: np.ndarray, b: np.ndarray) -> None:
    if a.shape != b.shape:
        raise DimensionMismatchError(a.shape[0], b.shape[0])


def add(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    _same_length(a, b)
    return a + b


def subtract(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    _same_length(a, b)
    return a - b


def scale(a: np.ndarray, factor: float) -> np.ndarray:
    return a * factor


def dot(a: np.ndarray, b: np.ndarray) -> float:
    _same_length(a, b)
    return float(np.dot(a, b))


def random_vector(rank: int, rng: np.random.Generator) -> np.ndarray:
    """Independent uniform entries in ``[0, 1)``."""
    return rng.random(rank)
