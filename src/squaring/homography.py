"""
Homography Solver

Derives the projection that squares an ordered quadrilateral: source-image
pixels inside the quadrilateral are mapped onto a rectangle the size of its
bounding box, with the first ordered corner going to the top-left.

The solve happens in bounding-box-normalized coordinates ([0, 1] x [0, 1])
for numerical stability, then is wrapped in pixel scaling on both sides.
"""

import logging
from typing import Union

import numpy as np

from src.common.types import BoundingBox
from src.squaring.errors import DegenerateProjection
from src.squaring.projection import DEFAULT_EPSILON, Projection
from src.squaring.types import SolverMethod

logger = logging.getLogger(__name__)

# Corners of the unit square in the same cyclic order as the quadrilateral
UNIT_SQUARE = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])


def normalize_points(quad: np.ndarray, bbox: BoundingBox) -> np.ndarray:
    """
    Express quadrilateral points relative to their bounding box.

    Args:
        quad: Ordered points of shape (4, 2) in source pixels.
        bbox: Bounding box of those points.

    Returns:
        float64 array of shape (4, 2) with values in [0, 1].
    """
    pts = np.asarray(quad, dtype=np.float64)
    origin = np.array([bbox.x_min, bbox.y_min], dtype=np.float64)
    size = np.array([bbox.width, bbox.height], dtype=np.float64)
    return (pts - origin) / size


def unit_square_projection_closed_form(
    points: np.ndarray, epsilon: float = DEFAULT_EPSILON
) -> Projection:
    """
    Projection sending the unit square corners onto four points.

    (0,0) -> P1, (1,0) -> P2, (1,1) -> P3, (0,1) -> P4, solved with the
    closed-form expression for the eight free matrix entries (the ninth is
    fixed at 1). Four correspondences give exactly eight constraints, so no
    fitting is involved.

    Args:
        points: Four normalized points of shape (4, 2).
        epsilon: Smallest |denominator| accepted.

    Raises:
        DegenerateProjection: If the shared denominator is ~0.
    """
    (xt1, yt1), (xt2, yt2), (xt3, yt3), (xt4, yt4) = np.asarray(
        points, dtype=np.float64
    )

    denominator = (
        xt2 * yt3 - xt2 * yt4 - xt3 * yt2 + xt3 * yt4 + xt4 * yt2 - xt4 * yt3
    )
    if not np.isfinite(denominator) or abs(denominator) < epsilon:
        raise DegenerateProjection(
            f"Closed-form solve denominator is {denominator:.3g}; "
            "the quadrilateral is too close to degenerate"
        )

    g = (
        xt1 * yt3 - xt1 * yt4 - xt2 * yt3 + xt2 * yt4
        - xt3 * yt1 + xt3 * yt2 + xt4 * yt1 - xt4 * yt2
    ) / denominator
    h = (
        xt1 * yt2 - xt1 * yt3 - xt2 * yt1 + xt2 * yt4
        + xt3 * yt1 - xt3 * yt4 - xt4 * yt2 + xt4 * yt3
    ) / denominator

    # (1,0) -> P2 and (0,1) -> P4 fix the linear terms once g, h are known
    a = g * xt2 - xt1 + xt2
    b = h * xt4 - xt1 + xt4
    d = g * yt2 - yt1 + yt2
    e = h * yt4 - yt1 + yt4
    # (0,0) -> P1
    c = xt1
    f = yt1

    return Projection([a, b, c, d, e, f, g, h, 1.0], epsilon=epsilon)


def unit_square_projection_linear(
    points: np.ndarray, epsilon: float = DEFAULT_EPSILON
) -> Projection:
    """
    Same mapping as the closed form, via the general 8x8 linear system.

    Each correspondence (u, v) -> (x, y) contributes
    ``a*u + b*v + c - g*u*x - h*v*x = x`` and
    ``d*u + e*v + f - g*u*y - h*v*y = y``.

    Raises:
        DegenerateProjection: If the system is singular.
    """
    targets = np.asarray(points, dtype=np.float64)

    A = np.zeros((8, 8))
    rhs = np.zeros(8)
    for i, ((u, v), (x, y)) in enumerate(zip(UNIT_SQUARE, targets)):
        A[2 * i] = [u, v, 1.0, 0.0, 0.0, 0.0, -u * x, -v * x]
        A[2 * i + 1] = [0.0, 0.0, 0.0, u, v, 1.0, -u * y, -v * y]
        rhs[2 * i] = x
        rhs[2 * i + 1] = y

    condition = np.linalg.cond(A)
    if not np.isfinite(condition) or condition * epsilon > 1.0:
        raise DegenerateProjection(
            f"Projective system is singular (condition number {condition:.3g})"
        )

    try:
        solution = np.linalg.solve(A, rhs)
    except np.linalg.LinAlgError as e:
        raise DegenerateProjection(f"Projective system is singular: {e}") from e

    return Projection(np.append(solution, 1.0), epsilon=epsilon)


def unit_square_projection(
    points: np.ndarray,
    method: Union[SolverMethod, str] = SolverMethod.CLOSED_FORM,
    epsilon: float = DEFAULT_EPSILON,
) -> Projection:
    """Dispatch to the configured solve strategy."""
    method = SolverMethod(method)
    if method is SolverMethod.LINEAR_SYSTEM:
        return unit_square_projection_linear(points, epsilon=epsilon)
    return unit_square_projection_closed_form(points, epsilon=epsilon)


def compute_sampling_projection(
    quad: np.ndarray,
    bbox: BoundingBox,
    method: Union[SolverMethod, str] = SolverMethod.CLOSED_FORM,
    epsilon: float = DEFAULT_EPSILON,
) -> Projection:
    """
    Projection from output pixels back to crop-local source pixels.

    This is the map the rectifier samples through. It is built from the
    unit-square solve directly, so it stays finite over the whole output
    rectangle even when the forward map sends part of the bounding box to
    infinity.

    Args:
        quad: Canonically ordered quadrilateral of shape (4, 2), source pixels.
        bbox: Its bounding box (crop region and output size).
        method: Solve strategy.
        epsilon: Degeneracy threshold.

    Returns:
        Backward projection (destination -> source crop).

    Raises:
        DegenerateProjection: If the solve fails.
    """
    width, height = float(bbox.width), float(bbox.height)

    normalized = normalize_points(quad, bbox)
    logger.debug(f"Normalized quadrilateral: {normalized.round(4).tolist()}")

    to_quad = unit_square_projection(normalized, method=method, epsilon=epsilon)

    sampling = (
        Projection.scale(1.0 / width, 1.0 / height)
        .and_then(to_quad)
        .and_then(Projection.scale(width, height))
    )

    logger.debug(f"Sampling projection ({SolverMethod(method).value}): {sampling}")

    return sampling


def compute_rectifying_projection(
    quad: np.ndarray,
    bbox: BoundingBox,
    method: Union[SolverMethod, str] = SolverMethod.CLOSED_FORM,
    epsilon: float = DEFAULT_EPSILON,
) -> Projection:
    """
    Projection from crop-local source pixels to output pixels.

    The ordered corners land on (0, 0), (w, 0), (w, h), (0, h) where
    (w, h) is the bounding box size. Equivalent to composing
    ``scale(1/w, 1/h)``, the inverted unit-square solve and ``scale(w, h)``.

    Args:
        quad: Canonically ordered quadrilateral of shape (4, 2), source pixels.
        bbox: Its bounding box (crop region and output size).
        method: Solve strategy.
        epsilon: Degeneracy threshold.

    Returns:
        Forward projection (source crop -> destination).

    Raises:
        DegenerateProjection: If the solve or inversion fails.

    Example:
        >>> quad = np.array([[20, 10], [80, 30], [70, 90], [10, 70]])
        >>> bbox = BoundingBox.from_points(quad)
        >>> p = compute_rectifying_projection(quad, bbox)
        >>> np.round(p.map_point(10, 0), 6)  # (20, 10) in crop-local space
        array([0., 0.])
    """
    sampling = compute_sampling_projection(quad, bbox, method=method, epsilon=epsilon)
    return sampling.invert(epsilon=epsilon)
