"""
Projective transforms between 2-D planes.

A Projection wraps a 3x3 homogeneous matrix normalized so that the
bottom-right entry is 1 (or to unit norm when that entry is zero).
Instances are immutable: composition and inversion return new values.
"""

import logging
from typing import Iterable, Union

import numpy as np

from src.squaring.errors import DegenerateProjection

logger = logging.getLogger(__name__)

# Below this magnitude a normalizing entry or determinant is treated as zero
DEFAULT_EPSILON = 1e-9


class Projection:
    """
    Immutable 3x3 projective matrix.

    Points are mapped as column vectors: ``[x', y', w'] = M @ [x, y, 1]``
    followed by division by ``w'``.

    Example:
        >>> p = Projection.scale(2.0, 3.0).and_then(Projection.translate(1.0, 1.0))
        >>> p.map_point(1.0, 1.0)
        (3.0, 4.0)
    """

    __slots__ = ("_matrix",)

    def __init__(self, matrix: Union[np.ndarray, Iterable[float]], epsilon: float = DEFAULT_EPSILON):
        """
        Args:
            matrix: Nine entries in row-major order, or a 3x3 array.
            epsilon: Smallest |M[2, 2]| used as the normalizer.

        When M[2, 2] is ~0 (the origin maps to infinity) the matrix is
        scaled to unit norm instead, keeping its sign.

        Raises:
            DegenerateProjection: If entries are non-finite or all zero.
        """
        m = np.array(matrix, dtype=np.float64).reshape(3, 3)

        if not np.all(np.isfinite(m)):
            raise DegenerateProjection(f"Projection matrix has non-finite entries: {m.ravel()}")

        if abs(m[2, 2]) >= epsilon:
            m = m / m[2, 2]
        else:
            norm = np.linalg.norm(m)
            if norm < epsilon:
                raise DegenerateProjection("Projection matrix cannot be normalized (all entries ~0)")
            m = m / norm

        m.flags.writeable = False
        self._matrix = m

    @classmethod
    def identity(cls) -> "Projection":
        return cls(np.eye(3))

    @classmethod
    def scale(cls, sx: float, sy: float) -> "Projection":
        """Axis-aligned scaling about the origin."""
        return cls([sx, 0.0, 0.0, 0.0, sy, 0.0, 0.0, 0.0, 1.0])

    @classmethod
    def translate(cls, tx: float, ty: float) -> "Projection":
        return cls([1.0, 0.0, tx, 0.0, 1.0, ty, 0.0, 0.0, 1.0])

    @property
    def matrix(self) -> np.ndarray:
        """Read-only view of the normalized 3x3 matrix."""
        return self._matrix

    def and_then(self, other: "Projection") -> "Projection":
        """
        Compose two projections: apply ``self`` first, then ``other``.

        Raises:
            DegenerateProjection: If the product is non-finite or all zero.
        """
        return Projection(other._matrix @ self._matrix)

    def invert(self, epsilon: float = DEFAULT_EPSILON) -> "Projection":
        """
        Return the inverse projection.

        Raises:
            DegenerateProjection: If the matrix is singular.
        """
        det = float(np.linalg.det(self._matrix))
        if not np.isfinite(det) or abs(det) < epsilon:
            raise DegenerateProjection(f"Projection is not invertible (det={det:.3g})")

        try:
            inverse = np.linalg.inv(self._matrix)
        except np.linalg.LinAlgError as e:
            raise DegenerateProjection(f"Projection is not invertible: {e}") from e

        return Projection(inverse, epsilon=epsilon)

    def map_points(self, points: Union[np.ndarray, list]) -> np.ndarray:
        """
        Map an array of points through the projection.

        Args:
            points: Array-like of shape (N, 2).

        Returns:
            float64 array of shape (N, 2). Points sent to infinity
            (homogeneous weight 0) come back as inf/nan.
        """
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        homogeneous = np.hstack([pts, np.ones((len(pts), 1))])
        mapped = homogeneous @ self._matrix.T
        with np.errstate(divide="ignore", invalid="ignore"):
            return mapped[:, :2] / mapped[:, 2:3]

    def map_point(self, x: float, y: float) -> tuple:
        """Map a single (x, y) point."""
        mx, my = self.map_points([[x, y]])[0]
        return (float(mx), float(my))

    def __eq__(self, other: object) -> bool:
        """Projective equality: matrices equal up to a non-zero scale factor."""
        if not isinstance(other, Projection):
            return NotImplemented
        a = self._matrix / np.linalg.norm(self._matrix)
        b = other._matrix / np.linalg.norm(other._matrix)
        return bool(np.allclose(a, b) or np.allclose(a, -b))

    def __repr__(self) -> str:
        rows = ", ".join(
            "[" + ", ".join(f"{v:.6g}" for v in row) + "]" for row in self._matrix
        )
        return f"Projection([{rows}])"
