"""
Vector helpers shared by the key estimator.

Chroma vectors and key profiles are only ever compared after
unit-normalization; profile rotation is cyclic over the 12 pitch classes.
"""

from typing import Sequence, Union

import numpy as np

ArrayLike = Union[Sequence[float], np.ndarray]


def normalize_vector(vector: ArrayLike) -> np.ndarray:
    """
    Scale a vector to unit Euclidean norm.

    A zero vector is returned as zeros instead of dividing by zero.

    Args:
        vector: Input values

    Returns:
        New float array with norm 1 (or all zeros)
    """
    values = np.asarray(vector, dtype=float)
    norm = float(np.linalg.norm(values))
    return values / (norm or 1.0)


def dot(a: ArrayLike, b: ArrayLike) -> float:
    """Inner product of two equal-length vectors."""
    a_arr = np.asarray(a, dtype=float)
    b_arr = np.asarray(b, dtype=float)
    if a_arr.shape != b_arr.shape:
        raise ValueError(f"Shape mismatch: {a_arr.shape} vs {b_arr.shape}")
    return float(np.dot(a_arr, b_arr))


def rotate_profile(profile: ArrayLike, n: int) -> np.ndarray:
    """
    Cyclically rotate a profile so its first entry lands on index ``n``.

    A C-rooted key profile rotated by ``n`` becomes the profile for the
    key rooted on pitch class ``n``. All values are preserved.
    """
    return np.roll(np.asarray(profile, dtype=float), n)
