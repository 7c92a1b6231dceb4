"""
Unit tests for the vector helpers used by key estimation.

Tests normalization, dot product, and cyclic profile rotation.
"""

import math

import numpy as np
import pytest

from dabzaudio.analyze.key import MAJOR_PROFILE, MINOR_PROFILE
from dabzaudio.analyze.vectors import dot, normalize_vector, rotate_profile


class TestNormalizeVector:
    """Test unit normalization."""

    def test_unit_norm(self):
        """Non-zero vectors come out with norm 1."""
        for vector in ([3.0, 4.0], MAJOR_PROFILE, [0.001] * 12, [-2.0, 5.0, 1.5]):
            assert math.isclose(np.linalg.norm(normalize_vector(vector)), 1.0, rel_tol=1e-12)

    def test_zero_vector_unchanged(self):
        """Zero vector normalizes to itself instead of NaN."""
        result = normalize_vector([0.0] * 12)
        assert np.array_equal(result, np.zeros(12))
        assert not np.any(np.isnan(result))

    def test_direction_preserved(self):
        """Normalization only scales."""
        assert np.allclose(normalize_vector([3.0, 4.0]), [0.6, 0.8])

    def test_input_not_mutated(self):
        """A new array is returned."""
        values = np.array([3.0, 4.0])
        normalize_vector(values)
        assert np.array_equal(values, [3.0, 4.0])


class TestDot:
    """Test inner product."""

    def test_dot_basic(self):
        assert dot([1, 2, 3], [4, 5, 6]) == 32.0

    def test_dot_returns_float(self):
        assert isinstance(dot(np.ones(12), np.ones(12)), float)

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            dot([1, 2, 3], [1, 2])


class TestRotateProfile:
    """Test cyclic rotation."""

    def test_full_rotation_identity(self):
        """Rotating by 12 returns the original."""
        assert np.array_equal(rotate_profile(MAJOR_PROFILE, 12), np.array(MAJOR_PROFILE))

    @pytest.mark.parametrize("k", range(13))
    def test_rotation_round_trip(self, k):
        """Rotating by k then 12-k returns the original."""
        rotated = rotate_profile(rotate_profile(MINOR_PROFILE, k), 12 - k)
        assert np.array_equal(rotated, np.array(MINOR_PROFILE))

    def test_values_preserved(self):
        """Rotation keeps every value."""
        rotated = rotate_profile(MAJOR_PROFILE, 5)
        assert sorted(rotated) == sorted(MAJOR_PROFILE)

    def test_tonic_lands_on_root(self):
        """Tonic weight moves to the root pitch class."""
        rotated = rotate_profile(MAJOR_PROFILE, 7)
        assert rotated[7] == MAJOR_PROFILE[0]
        assert rotated[(7 + 7) % 12] == MAJOR_PROFILE[7]  # dominant of G is D
