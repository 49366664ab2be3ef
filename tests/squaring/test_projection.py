"""
Unit tests for the Projection value type.
"""

import numpy as np
import pytest

from src.squaring.errors import DegenerateProjection
from src.squaring.projection import Projection


class TestProjectionConstruction:
    """Tests for building projections."""

    def test_normalizes_bottom_right_entry(self):
        """Test that the matrix is scaled so M[2,2] == 1."""
        p = Projection([2, 0, 0, 0, 2, 0, 0, 0, 2])
        assert np.allclose(p.matrix, np.eye(3))

    def test_zero_normalizer_scales_to_unit_norm(self):
        """Test that M[2,2] == 0 is accepted when the matrix is invertible."""
        p = Projection([1, 0, 0, 0, 1, 1, 0, 1, 0])  # w = y, origin maps to infinity

        assert np.linalg.norm(p.matrix) == pytest.approx(1.0)
        assert p.matrix[2, 2] == 0.0
        assert p.map_point(2.0, 3.0) == pytest.approx((2.0 / 3.0, 4.0 / 3.0))

    def test_zero_normalizer_inverts(self):
        p = Projection([1, 0, 0, 0, 1, 1, 0, 1, 0])
        inv = p.invert()

        assert inv.map_point(2.0 / 3.0, 4.0 / 3.0) == pytest.approx((2.0, 3.0))
        assert p.and_then(inv) == Projection.identity()

    def test_all_zero_matrix_rejected(self):
        with pytest.raises(DegenerateProjection, match="cannot be normalized"):
            Projection([0, 0, 0, 0, 0, 0, 0, 0, 0])

    def test_non_finite_entries_rejected(self):
        """Test that NaN or inf entries raise DegenerateProjection."""
        with pytest.raises(DegenerateProjection, match="non-finite"):
            Projection([np.nan, 0, 0, 0, 1, 0, 0, 0, 1])
        with pytest.raises(DegenerateProjection, match="non-finite"):
            Projection([1, 0, np.inf, 0, 1, 0, 0, 0, 1])

    def test_matrix_is_read_only(self):
        """Test that the matrix cannot be mutated in place."""
        p = Projection.identity()
        with pytest.raises(ValueError):
            p.matrix[0, 0] = 5.0

    def test_input_array_is_copied(self):
        """Test that later changes to the source array do not leak in."""
        m = np.eye(3)
        p = Projection(m)
        m[0, 2] = 100.0
        assert p.map_point(0.0, 0.0) == (0.0, 0.0)


class TestProjectionOperations:
    """Tests for composition, inversion and mapping."""

    def test_and_then_applies_self_first(self):
        """Test composition order: scale, then translate."""
        p = Projection.scale(2.0, 3.0).and_then(Projection.translate(1.0, 1.0))
        assert p.map_point(1.0, 1.0) == pytest.approx((3.0, 4.0))

        q = Projection.translate(1.0, 1.0).and_then(Projection.scale(2.0, 3.0))
        assert q.map_point(1.0, 1.0) == pytest.approx((4.0, 6.0))

    def test_invert_round_trip(self):
        """Test that p followed by its inverse is the identity."""
        p = Projection([1.2, 0.1, 5.0, -0.2, 0.9, 3.0, 0.001, 0.002, 1.0])
        round_trip = p.and_then(p.invert())

        assert round_trip == Projection.identity()
        pts = np.array([[0.0, 0.0], [10.0, 20.0], [-5.0, 7.5]])
        assert np.allclose(round_trip.map_points(pts), pts)

    def test_invert_returns_new_value(self):
        """Test that inversion leaves the original untouched."""
        p = Projection.scale(2.0, 4.0)
        inv = p.invert()

        assert p.map_point(1.0, 1.0) == pytest.approx((2.0, 4.0))
        assert inv.map_point(2.0, 4.0) == pytest.approx((1.0, 1.0))

    def test_singular_inversion_rejected(self):
        """Test that a collapsing projection cannot be inverted."""
        with pytest.raises(DegenerateProjection, match="not invertible"):
            Projection.scale(0.0, 1.0).invert()

    def test_map_points_perspective_divide(self):
        """Test that mapping divides by the homogeneous weight."""
        p = Projection([1, 0, 0, 0, 1, 0, 1, 0, 1])  # w = x + 1
        mapped = p.map_points([[1.0, 4.0], [3.0, 8.0]])
        assert np.allclose(mapped, [[0.5, 2.0], [0.75, 2.0]])

    def test_equality(self):
        assert Projection.scale(2.0, 2.0) == Projection([4, 0, 0, 0, 4, 0, 0, 0, 2])
        assert Projection.scale(2.0, 2.0) != Projection.identity()

    def test_equality_ignores_scale_and_sign(self):
        m = np.array([[1.0, 0, 0], [0, 1, 1], [0, 1, 0]])
        assert Projection(m) == Projection(-3.0 * m)
